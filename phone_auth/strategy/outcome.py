"""Outcome contract primitives emitted by authentication strategies."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NotRequired, TypedDict, cast

OUTCOME_KINDS: tuple[str, str, str] = ("success", "fail", "error")
OutcomeKind = Literal["success", "fail", "error"]


class Challenge(TypedDict):
    """Payload describing why a request was rejected."""

    message: str
    type: NotRequired[str]


@dataclass(frozen=True, slots=True)
class SuccessOutcome:
    """Credentials were verified and resolved to a user."""

    user: object
    info: object | None = None
    kind: Literal["success"] = "success"


@dataclass(frozen=True, slots=True)
class FailOutcome:
    """Credentials were absent, malformed, or rejected by the verifier."""

    challenge: Challenge | None = None
    status: int | None = None
    kind: Literal["fail"] = "fail"


@dataclass(frozen=True, slots=True)
class ErrorOutcome:
    """Verification hit an unexpected fault."""

    error: object
    kind: Literal["error"] = "error"


AuthOutcome = SuccessOutcome | FailOutcome | ErrorOutcome


def challenge(message: str, *, challenge_type: str | None = None) -> Challenge:
    """Return a typed rejection challenge."""
    result: Challenge = {"message": message}
    if challenge_type is not None:
        result["type"] = challenge_type
    return result


def coerce_challenge(value: object) -> Challenge | None:
    """Normalize verifier-supplied rejection info into a challenge payload.

    Strings become the challenge message, mappings keep their ``message`` and
    ``type`` entries when those are strings. Anything else carries no detail.
    """
    if isinstance(value, str):
        return challenge(value) if value else None
    if not isinstance(value, Mapping):
        return None

    value_map = cast("Mapping[str, object]", value)
    message_obj = value_map.get("message")
    if not isinstance(message_obj, str):
        return None
    type_obj = value_map.get("type")
    return challenge(
        message_obj,
        challenge_type=type_obj if isinstance(type_obj, str) else None,
    )
