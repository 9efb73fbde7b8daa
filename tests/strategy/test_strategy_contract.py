"""Tests for strategy binding and outcome contract helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping

import pytest
from typing_extensions import override

from phone_auth.strategy import (
    CredentialRequest,
    FailOutcome,
    Strategy,
    StrategyNotBoundError,
    challenge,
    coerce_challenge,
)
from tests.mocks.strategy_host import FakeCredentialRequest, RecordingActions


class _AlwaysRejectStrategy(Strategy):
    name = "always-reject"

    @override
    def authenticate(
        self,
        request: CredentialRequest,
        options: Mapping[str, object] | None = None,
    ) -> None:
        self.reject(challenge("nope"), 403)


def test_unbound_strategy_cannot_signal_outcomes() -> None:
    """Ensure outcome signals require bind() first."""
    strategy = _AlwaysRejectStrategy()

    with pytest.raises(StrategyNotBoundError, match="always-reject"):
        strategy.authenticate(FakeCredentialRequest())


def test_bind_returns_copy_and_leaves_registered_instance_unbound() -> None:
    """Ensure per-request binding never mutates the registered instance."""
    strategy = _AlwaysRejectStrategy()
    actions = RecordingActions()

    bound = strategy.bind(actions)
    bound.authenticate(FakeCredentialRequest())

    if bound is strategy or strategy.is_bound or not bound.is_bound:
        raise AssertionError
    outcome = actions.single()
    if not isinstance(outcome, FailOutcome) or outcome.status != 403:  # noqa: PLR2004
        raise AssertionError


def test_fake_request_satisfies_credential_request_protocol() -> None:
    """Ensure body/query objects satisfy the runtime-checkable request protocol."""
    if not isinstance(FakeCredentialRequest(), CredentialRequest):
        raise AssertionError


@pytest.mark.parametrize(
    ("info", "expected"),
    [
        ("Code expired", {"message": "Code expired"}),
        (
            {"message": "Locked", "type": "lockout"},
            {"message": "Locked", "type": "lockout"},
        ),
        ({"message": "Locked", "type": 7}, {"message": "Locked"}),
        ({"reason": "no message"}, None),
        ("", None),
        (None, None),
        (42, None),
    ],
)
def test_coerce_challenge_normalizes_verifier_info(
    info: object,
    expected: object,
) -> None:
    """Ensure verifier info maps to a challenge only when it carries a message."""
    if coerce_challenge(info) != expected:
        raise AssertionError


@pytest.mark.asyncio
async def test_cancel_pending_only_touches_the_bound_copy() -> None:
    """Ensure tracked background work is per request and cancellable."""
    strategy = _AlwaysRejectStrategy()
    first = strategy.bind(RecordingActions())
    second = strategy.bind(RecordingActions())
    loop = asyncio.get_running_loop()
    first_work: asyncio.Future[None] = loop.create_future()
    second_work: asyncio.Future[None] = loop.create_future()
    first.track_pending(first_work)
    second.track_pending(second_work)

    cancelled = first.cancel_pending()

    if cancelled != 1 or not first_work.cancelled():
        raise AssertionError
    if second_work.done():
        raise AssertionError
    second_work.set_result(None)
    await asyncio.sleep(0)
    if second.cancel_pending() != 0:
        raise AssertionError
