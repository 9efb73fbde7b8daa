"""In-memory host doubles for driving strategies without FastAPI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from phone_auth.strategy import ErrorOutcome, FailOutcome, SuccessOutcome

if TYPE_CHECKING:
    from phone_auth.strategy import AuthOutcome, Challenge


@dataclass(slots=True)
class FakeCredentialRequest:
    """Request double exposing body and query mappings."""

    body: dict[str, object] = field(default_factory=dict)
    query: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class RecordingActions:
    """Outcome actions that record every signal in call order."""

    outcomes: list[AuthOutcome] = field(default_factory=list)

    def succeed(self, user: object, info: object | None = None) -> None:
        """Record a success signal."""
        self.outcomes.append(SuccessOutcome(user=user, info=info))

    def reject(self, challenge: Challenge | None, status: int | None) -> None:
        """Record a fail signal."""
        self.outcomes.append(FailOutcome(challenge=challenge, status=status))

    def error(self, fault: object) -> None:
        """Record an error signal."""
        self.outcomes.append(ErrorOutcome(error=fault))

    def single(self) -> AuthOutcome:
        """Return the only recorded outcome, failing on zero or many."""
        if len(self.outcomes) != 1:
            message = f"Expected exactly one outcome, got {self.outcomes!r}."
            raise AssertionError(message)
        return self.outcomes[0]


@dataclass(slots=True)
class VerifyRecorder:
    """Verification callback double replying with a scripted completion."""

    err: object | None = None
    user: object | None = None
    info: object | None = None
    calls: list[tuple[object, ...]] = field(default_factory=list)

    def __call__(self, *args: object) -> None:
        """Record arguments and invoke the trailing ``done`` handler."""
        self.calls.append(args[:-1])
        done = args[-1]
        if not callable(done):
            raise AssertionError
        done(self.err, self.user, self.info)
