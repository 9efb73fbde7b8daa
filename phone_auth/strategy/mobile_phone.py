"""Phone number and one-time verification code authentication strategy."""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, fields
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

from typing_extensions import override

from phone_auth.config.settings import (
    DEFAULT_PHONE_NUMBER_FIELD,
    DEFAULT_VERIFY_CODE_FIELD,
)

from .base import Strategy
from .lookup import lookup_credential
from .outcome import challenge, coerce_challenge

if TYPE_CHECKING:
    from phone_auth.config.settings import AppSettings

    from .base import CredentialRequest

logger = logging.getLogger(__name__)

STRATEGY_NAME = "mobilePhone"
DEFAULT_BAD_REQUEST_MESSAGE = "Missing credentials"
DEFAULT_BAD_PHONE_NUMBER_MESSAGE = "Validator Error phoneNumber"
BAD_REQUEST_STATUS = int(HTTPStatus.BAD_REQUEST)

VerifyCallback = Callable[..., object]
PhoneNumberMatcher = Callable[[str], object]
PhoneNumberPattern = re.Pattern[str] | str | PhoneNumberMatcher

# Keeps scheduled verifications alive until they finish.
_pending_verifications: set[asyncio.Future[None]] = set()


class StrategyConfigurationError(TypeError):
    """Raised when a strategy is constructed with unusable configuration."""

    @classmethod
    def missing_verify_callback(cls) -> StrategyConfigurationError:
        """Build error for construction without a verification callback."""
        message = "MobilePhoneStrategy requires a verify callback."
        return cls(message)

    @classmethod
    def unknown_options(cls, keys: list[str]) -> StrategyConfigurationError:
        """Build error for options mappings with unsupported keys."""
        message = f"Unknown MobilePhoneStrategy options: {', '.join(sorted(keys))}."
        return cls(message)

    @classmethod
    def invalid_option(cls, name: str, expected: str) -> StrategyConfigurationError:
        """Build error for options with wrong value types."""
        message = f"Invalid MobilePhoneStrategy option {name!r}: expected {expected}."
        return cls(message)

    @classmethod
    def invalid_pattern(cls, pattern: str, reason: str) -> StrategyConfigurationError:
        """Build error for phone number patterns that fail to compile."""
        message = f"Invalid phone number pattern {pattern!r}: {reason}."
        return cls(message)


@dataclass(frozen=True, slots=True)
class MobilePhoneStrategyOptions:
    """Construction-time settings for :class:`MobilePhoneStrategy`."""

    phone_number_field: str = DEFAULT_PHONE_NUMBER_FIELD
    verify_code_field: str = DEFAULT_VERIFY_CODE_FIELD
    phone_number_pattern: PhoneNumberPattern | None = None
    pass_request_to_callback: bool = False

    @classmethod
    def from_mapping(cls, options: Mapping[str, object]) -> MobilePhoneStrategyOptions:
        """Build options from a plain mapping with snake_case keys."""
        known = {item.name for item in fields(cls)}
        unknown = [key for key in options if key not in known]
        if unknown:
            raise StrategyConfigurationError.unknown_options(unknown)

        phone_number_field = options.get("phone_number_field")
        verify_code_field = options.get("verify_code_field")
        pass_request = options.get("pass_request_to_callback", False)
        for name, value in (
            ("phone_number_field", phone_number_field),
            ("verify_code_field", verify_code_field),
        ):
            if value is not None and not isinstance(value, str):
                raise StrategyConfigurationError.invalid_option(name, "a string")

        return cls(
            phone_number_field=cast("str | None", phone_number_field)
            or DEFAULT_PHONE_NUMBER_FIELD,
            verify_code_field=cast("str | None", verify_code_field)
            or DEFAULT_VERIFY_CODE_FIELD,
            phone_number_pattern=cast(
                "PhoneNumberPattern | None",
                options.get("phone_number_pattern"),
            ),
            pass_request_to_callback=bool(pass_request),
        )

    @classmethod
    def from_settings(cls, settings: AppSettings) -> MobilePhoneStrategyOptions:
        """Build options from resolved environment settings."""
        return cls(
            phone_number_field=settings.phone_number_field,
            verify_code_field=settings.verify_code_field,
            phone_number_pattern=settings.phone_number_pattern,
            pass_request_to_callback=settings.pass_request_to_callback,
        )


class VerifyCompletion:
    """Single-use completion handler passed to the verification callback."""

    __slots__ = ("_called", "_handler_fault", "_strategy")

    def __init__(self, strategy: Strategy) -> None:
        """Bind the handler to the per-request strategy copy."""
        self._strategy = strategy
        self._called = False
        self._handler_fault: BaseException | None = None

    @property
    def called(self) -> bool:
        """Return True once an outcome has been reported."""
        return self._called

    def raised_in_handler(self, exc: BaseException) -> bool:
        """Return True when ``exc`` came from the host while signalling."""
        return exc is self._handler_fault

    def __call__(
        self,
        err: object | None = None,
        user: object | None = None,
        info: object | None = None,
    ) -> None:
        """Translate the verifier's ``(err, user, info)`` into one outcome."""
        if self._called:
            logger.warning(
                "Verification completion invoked more than once; ignoring",
                extra={"strategy": self._strategy.name},
            )
            return
        self._called = True
        try:
            self._signal(err, user, info)
        except Exception as exc:
            self._handler_fault = exc
            raise

    def _signal(
        self,
        err: object | None,
        user: object | None,
        info: object | None,
    ) -> None:
        if err is not None:
            logger.warning(
                "Verification callback reported an error",
                extra={"strategy": self._strategy.name, "fault": repr(err)},
            )
            self._strategy.error(err)
            return
        if user is None or user is False:
            logger.info(
                "Verification callback rejected credentials",
                extra={"strategy": self._strategy.name},
            )
            self._strategy.reject(coerce_challenge(info), None)
            return
        self._strategy.succeed(user, info)

    def fault(self, exc: BaseException) -> None:
        """Report a fault raised by the verifier itself."""
        if self._called:
            logger.warning(
                "Verifier fault after completion; ignoring",
                exc_info=exc,
                extra={"strategy": self._strategy.name},
            )
            return
        self._called = True
        logger.warning(
            "Verification callback raised",
            exc_info=exc,
            extra={"strategy": self._strategy.name},
        )
        self._strategy.error(exc)


class MobilePhoneStrategy(Strategy):
    """Authenticate a phone number and verification code via a callback.

    Construct with ``MobilePhoneStrategy(verify)`` or
    ``MobilePhoneStrategy(options, verify)``. The callback is called as
    ``verify(phone_number, verify_code, done)``, or with the request first when
    ``pass_request_to_callback`` is set, and must call ``done(err, user, info)``
    exactly once. It may be a coroutine function.

    Example::

        def verify(phone_number, verify_code, done):
            user = users.find(phone_number=phone_number, code=verify_code)
            done(None, user or False)

        authenticator.use(MobilePhoneStrategy(verify))
    """

    name = STRATEGY_NAME

    def __init__(
        self,
        options: MobilePhoneStrategyOptions
        | Mapping[str, object]
        | VerifyCallback
        | None = None,
        verify: VerifyCallback | None = None,
    ) -> None:
        """Capture configuration and the verification callback."""
        super().__init__()
        if verify is None and callable(options) and not isinstance(options, Mapping):
            verify = options
            options = None
        if verify is None or not callable(verify):
            raise StrategyConfigurationError.missing_verify_callback()

        resolved = _resolve_options(
            cast("MobilePhoneStrategyOptions | Mapping[str, object] | None", options),
        )
        self._options = resolved
        self._verify: VerifyCallback = verify
        self._phone_number_matcher = _build_phone_number_matcher(
            resolved.phone_number_pattern,
        )

    @property
    def options(self) -> MobilePhoneStrategyOptions:
        """Return the immutable construction-time options."""
        return self._options

    @override
    def authenticate(
        self,
        request: CredentialRequest,
        options: Mapping[str, object] | None = None,
    ) -> None:
        """Extract credentials, shape-check the phone number, and verify."""
        call_options: Mapping[str, object] = options or {}
        body = getattr(request, "body", None)
        query = getattr(request, "query", None)

        phone_number = _coerce_credential(
            lookup_credential(
                body=body,
                query=query,
                field=self._options.phone_number_field,
            ),
        )
        verify_code = _coerce_credential(
            lookup_credential(
                body=body,
                query=query,
                field=self._options.verify_code_field,
            ),
        )
        if phone_number is None or verify_code is None:
            logger.info(
                "Rejected mobile phone login: missing credentials",
                extra={"strategy": self.name, "reason": "missing_credentials"},
            )
            self.reject(
                challenge(
                    _message_override(call_options, "bad_request_message")
                    or DEFAULT_BAD_REQUEST_MESSAGE,
                ),
                BAD_REQUEST_STATUS,
            )
            return

        matcher = self._phone_number_matcher
        if matcher is not None:
            try:
                matched = matcher(phone_number)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Phone number pattern raised during evaluation",
                    exc_info=exc,
                    extra={"strategy": self.name},
                )
                self.error(exc)
                return
            if not matched:
                logger.info(
                    "Rejected mobile phone login: phone number failed validation",
                    extra={"strategy": self.name, "reason": "invalid_phone_number"},
                )
                self.reject(
                    challenge(
                        _message_override(call_options, "bad_phone_number_message")
                        or DEFAULT_BAD_PHONE_NUMBER_MESSAGE,
                    ),
                    BAD_REQUEST_STATUS,
                )
                return

        self._dispatch_verify(request, phone_number, verify_code)

    def _dispatch_verify(
        self,
        request: CredentialRequest,
        phone_number: str,
        verify_code: str,
    ) -> None:
        done = VerifyCompletion(self)
        try:
            if self._options.pass_request_to_callback:
                result = self._verify(request, phone_number, verify_code, done)
            else:
                result = self._verify(phone_number, verify_code, done)
        except Exception as exc:
            # A raise that escaped done() belongs to the host, not the verifier.
            if done.raised_in_handler(exc):
                raise
            done.fault(exc)
            return

        if inspect.isawaitable(result):
            _schedule_verification(self, cast("Awaitable[object]", result), done)


def _resolve_options(
    options: MobilePhoneStrategyOptions | Mapping[str, object] | None,
) -> MobilePhoneStrategyOptions:
    if options is None:
        return MobilePhoneStrategyOptions()
    if isinstance(options, MobilePhoneStrategyOptions):
        return MobilePhoneStrategyOptions(
            phone_number_field=options.phone_number_field
            or DEFAULT_PHONE_NUMBER_FIELD,
            verify_code_field=options.verify_code_field or DEFAULT_VERIFY_CODE_FIELD,
            phone_number_pattern=options.phone_number_pattern,
            pass_request_to_callback=options.pass_request_to_callback,
        )
    if isinstance(options, Mapping):
        return MobilePhoneStrategyOptions.from_mapping(options)
    raise StrategyConfigurationError.invalid_option(
        "options",
        "MobilePhoneStrategyOptions or a mapping",
    )


def _build_phone_number_matcher(
    pattern: PhoneNumberPattern | None,
) -> PhoneNumberMatcher | None:
    if pattern is None:
        return None
    if isinstance(pattern, str):
        try:
            return re.compile(pattern).search
        except re.error as exc:
            raise StrategyConfigurationError.invalid_pattern(pattern, str(exc)) from exc
    search = getattr(pattern, "search", None)
    if callable(search):
        return cast("PhoneNumberMatcher", search)
    if callable(pattern):
        return pattern
    raise StrategyConfigurationError.invalid_option(
        "phone_number_pattern",
        "a regular expression or a predicate",
    )


def _coerce_credential(value: object | None) -> str | None:
    """Return a non-empty credential string, or None when unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        value = str(value)
    if not isinstance(value, str) or not value:
        return None
    return value


def _message_override(options: Mapping[str, object], key: str) -> str | None:
    value = options.get(key)
    if isinstance(value, str) and value:
        return value
    return None


def _schedule_verification(
    strategy: Strategy,
    awaitable: Awaitable[object],
    done: VerifyCompletion,
) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError as exc:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        done.fault(exc)
        return

    task = asyncio.ensure_future(_await_verification(awaitable, done), loop=loop)
    _pending_verifications.add(task)
    task.add_done_callback(_pending_verifications.discard)
    strategy.track_pending(task)


async def _await_verification(
    awaitable: Awaitable[object],
    done: VerifyCompletion,
) -> None:
    try:
        _ = await awaitable
    except Exception as exc:
        if done.raised_in_handler(exc):
            raise
        done.fault(exc)
