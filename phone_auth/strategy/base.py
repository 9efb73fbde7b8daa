"""Strategy capability interface shared by all authentication strategies."""

from __future__ import annotations

import asyncio
import copy
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from .outcome import Challenge


@runtime_checkable
class CredentialRequest(Protocol):
    """Inbound request surface a strategy reads credentials from."""

    @property
    def body(self) -> Mapping[str, object] | None:
        """Return parsed request body fields."""

    @property
    def query(self) -> Mapping[str, object] | None:
        """Return query string parameters."""


class StrategyActions(Protocol):
    """Outcome signals a hosting authenticator provides to a bound strategy."""

    def succeed(self, user: object, info: object | None = None) -> None:
        """Report verified credentials resolved to ``user``."""

    def reject(self, challenge: Challenge | None, status: int | None) -> None:
        """Report absent, malformed, or rejected credentials."""

    def error(self, fault: object) -> None:
        """Report an unexpected fault."""


class StrategyNotBoundError(RuntimeError):
    """Raised when a strategy signals an outcome without a bound host."""

    @classmethod
    def for_strategy(cls, name: str) -> StrategyNotBoundError:
        """Build error for outcome signals on an unbound strategy instance."""
        message = (
            f"Strategy {name!r} is not bound to an authenticator. "
            "Call bind(actions) before authenticate()."
        )
        return cls(message)


class Strategy(ABC):
    """Base class for pluggable authentication strategies.

    A registered strategy instance is shared by every request. The host calls
    :meth:`bind` to get a per-request copy wired to its outcome actions, then
    calls :meth:`authenticate` on that copy. Exactly one of :meth:`succeed`,
    :meth:`reject` or :meth:`error` is expected per request.
    """

    name: str = "strategy"

    def __init__(self) -> None:
        """Initialize the strategy without bound outcome actions."""
        self._actions: StrategyActions | None = None
        self._pending: set[asyncio.Future[None]] = set()

    @abstractmethod
    def authenticate(
        self,
        request: CredentialRequest,
        options: Mapping[str, object] | None = None,
    ) -> None:
        """Authenticate ``request`` and signal exactly one outcome."""

    def bind(self, actions: StrategyActions) -> Self:
        """Return a shallow per-request copy that signals through ``actions``."""
        bound = copy.copy(self)
        bound._actions = actions  # noqa: SLF001
        bound._pending = set()  # noqa: SLF001
        return bound

    @property
    def is_bound(self) -> bool:
        """Return True when outcome actions are attached."""
        return self._actions is not None

    def succeed(self, user: object, info: object | None = None) -> None:
        """Signal the success channel."""
        self._require_actions().succeed(user, info)

    def reject(
        self,
        challenge: Challenge | None = None,
        status: int | None = None,
    ) -> None:
        """Signal the fail channel."""
        self._require_actions().reject(challenge, status)

    def error(self, fault: object) -> None:
        """Signal the error channel."""
        self._require_actions().error(fault)

    def track_pending(self, future: asyncio.Future[None]) -> None:
        """Remember background work started for the current request."""
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    def cancel_pending(self) -> int:
        """Cancel unfinished background work; return how many were cancelled."""
        cancelled = 0
        for future in list(self._pending):
            if future.cancel():
                cancelled += 1
        return cancelled

    def _require_actions(self) -> StrategyActions:
        actions = self._actions
        if actions is None:
            raise StrategyNotBoundError.for_strategy(self.name)
        return actions
