"""Strategy registry that runs one strategy per request and collects its outcome."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING, Self

from fastapi import HTTPException, Request

from phone_auth.config.logging import correlation_id
from phone_auth.strategy import (
    AuthOutcome,
    Challenge,
    ErrorOutcome,
    FailOutcome,
    Strategy,
    SuccessOutcome,
)

from .request import build_inbound_request

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from phone_auth.strategy import CredentialRequest

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_UNAUTHORIZED_DETAIL = "Unauthorized."
_AUTHENTICATION_ERROR_DETAIL = "Authentication error."


class UnknownStrategyError(KeyError):
    """Raised when a strategy name is not registered with the authenticator."""

    @classmethod
    def for_name(cls, name: str) -> UnknownStrategyError:
        """Build error for lookups of unregistered strategy names."""
        message = f"Unknown authentication strategy: {name!r}."
        return cls(message)


class VerificationTimeoutError(TimeoutError):
    """Raised into the error channel when verification does not resolve in time."""

    @classmethod
    def after(cls, *, strategy_name: str, seconds: float) -> VerificationTimeoutError:
        """Build error for verifications that exceeded the configured timeout."""
        message = (
            f"Strategy {strategy_name!r} did not report an outcome within "
            f"{seconds:g} seconds."
        )
        return cls(message)


@dataclass(frozen=True, slots=True)
class AuthenticatedPrincipal:
    """User resolved by a successful strategy run."""

    user: object
    info: object | None
    strategy: str


class FutureOutcomeActions:
    """Outcome actions that resolve an asyncio future with the first signal."""

    def __init__(
        self,
        *,
        strategy_name: str,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        """Create the pending outcome future on ``loop``."""
        self._strategy_name = strategy_name
        self._loop = loop
        self._future: asyncio.Future[AuthOutcome] = loop.create_future()

    @property
    def future(self) -> asyncio.Future[AuthOutcome]:
        """Return the future resolved by the first outcome signal."""
        return self._future

    def succeed(self, user: object, info: object | None = None) -> None:
        """Resolve with a success outcome."""
        self._resolve(SuccessOutcome(user=user, info=info))

    def reject(self, challenge: Challenge | None, status: int | None) -> None:
        """Resolve with a fail outcome."""
        self._resolve(FailOutcome(challenge=challenge, status=status))

    def error(self, fault: object) -> None:
        """Resolve with an error outcome."""
        self._resolve(ErrorOutcome(error=fault))

    def _resolve(self, outcome: AuthOutcome) -> None:
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None
        if running_loop is self._loop:
            self._set_outcome(outcome)
            return
        # Verifiers may complete from worker threads.
        _ = self._loop.call_soon_threadsafe(self._set_outcome, outcome)

    def _set_outcome(self, outcome: AuthOutcome) -> None:
        if self._future.done():
            logger.warning(
                "Ignoring %s outcome signalled after request was resolved",
                outcome.kind,
                extra={"strategy": self._strategy_name},
            )
            return
        self._future.set_result(outcome)


class Authenticator:
    """Registry of named strategies with per-request outcome collection."""

    def __init__(self, *, verify_timeout_seconds: float | None = None) -> None:
        """Create an empty registry with an optional verification timeout."""
        if verify_timeout_seconds is not None and verify_timeout_seconds <= 0:
            message = "verify_timeout_seconds must be positive or None."
            raise ValueError(message)
        self._strategies: dict[str, Strategy] = {}
        self._verify_timeout_seconds = verify_timeout_seconds

    @property
    def verify_timeout_seconds(self) -> float | None:
        """Return the verification timeout, or None when disabled."""
        return self._verify_timeout_seconds

    def use(self, strategy: Strategy, name: str | None = None) -> Self:
        """Register ``strategy`` under ``name`` or its own ``name`` attribute."""
        strategy_name = name or strategy.name
        if not strategy_name:
            message = "Authentication strategies must have a name."
            raise ValueError(message)
        self._strategies[strategy_name] = strategy
        logger.debug("Registered authentication strategy %s", strategy_name)
        return self

    def unuse(self, name: str) -> Self:
        """Remove a registered strategy; unknown names are ignored."""
        _ = self._strategies.pop(name, None)
        return self

    def get_strategy(self, name: str) -> Strategy:
        """Return the registered strategy for ``name``."""
        strategy = self._strategies.get(name)
        if strategy is None:
            raise UnknownStrategyError.for_name(name)
        return strategy

    async def run(
        self,
        name: str,
        request: CredentialRequest,
        options: Mapping[str, object] | None = None,
    ) -> AuthOutcome:
        """Authenticate ``request`` with strategy ``name`` and await its outcome."""
        strategy = self.get_strategy(name)
        actions = FutureOutcomeActions(
            strategy_name=name,
            loop=asyncio.get_running_loop(),
        )
        bound = strategy.bind(actions)
        bound.authenticate(request, options)

        timeout = self._verify_timeout_seconds
        if timeout is None:
            return await actions.future
        try:
            return await asyncio.wait_for(actions.future, timeout)
        except TimeoutError:
            cancelled = bound.cancel_pending()
            logger.warning(
                "Verification timed out after %s seconds",
                timeout,
                extra={"strategy": name, "cancelled_tasks": cancelled},
            )
            return ErrorOutcome(
                error=VerificationTimeoutError.after(
                    strategy_name=name,
                    seconds=timeout,
                ),
            )

    def dependency(
        self,
        name: str,
        options: Mapping[str, object] | None = None,
    ) -> Callable[[Request], Awaitable[AuthenticatedPrincipal]]:
        """Build a FastAPI dependency that authenticates with strategy ``name``."""

        async def _authenticate_request(request: Request) -> AuthenticatedPrincipal:
            request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
            token = correlation_id.set(request_id)
            try:
                inbound = await build_inbound_request(request)
                outcome = await self.run(name, inbound, options)
                return _principal_or_raise(
                    request=request,
                    strategy_name=name,
                    outcome=outcome,
                )
            finally:
                correlation_id.reset(token)

        return _authenticate_request


def _principal_or_raise(
    *,
    request: Request,
    strategy_name: str,
    outcome: AuthOutcome,
) -> AuthenticatedPrincipal:
    """Map a strategy outcome onto the request or an HTTP error."""
    if isinstance(outcome, SuccessOutcome):
        request.state.user = outcome.user
        request.state.auth_info = outcome.info
        logger.info("Authenticated request", extra={"strategy": strategy_name})
        return AuthenticatedPrincipal(
            user=outcome.user,
            info=outcome.info,
            strategy=strategy_name,
        )
    if isinstance(outcome, FailOutcome):
        raise _rejected_error(strategy_name=strategy_name, outcome=outcome)

    fault = outcome.error
    cause = fault if isinstance(fault, BaseException) else None
    logger.error(
        "Authentication strategy reported a fault",
        exc_info=cause,
        extra={"strategy": strategy_name, "fault": repr(fault)},
    )
    raise HTTPException(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        detail=_AUTHENTICATION_ERROR_DETAIL,
    ) from cause


def _rejected_error(*, strategy_name: str, outcome: FailOutcome) -> HTTPException:
    """Build the HTTP error for a rejected authentication attempt."""
    status_code = outcome.status or HTTPStatus.UNAUTHORIZED
    detail = (
        outcome.challenge["message"]
        if outcome.challenge is not None
        else _UNAUTHORIZED_DETAIL
    )
    headers = None
    if status_code == HTTPStatus.UNAUTHORIZED:
        headers = {"WWW-Authenticate": strategy_name}
    return HTTPException(status_code=status_code, detail=detail, headers=headers)
