"""Typed application settings loaded from static environment variables."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

LogLevel = str

ENV_LOG_LEVEL = "PHONE_AUTH_LOG_LEVEL"
ENV_PHONE_NUMBER_FIELD = "PHONE_AUTH_PHONE_NUMBER_FIELD"
ENV_VERIFY_CODE_FIELD = "PHONE_AUTH_VERIFY_CODE_FIELD"
ENV_PHONE_NUMBER_PATTERN = "PHONE_AUTH_PHONE_NUMBER_PATTERN"
ENV_PASS_REQUEST_TO_CALLBACK = "PHONE_AUTH_PASS_REQUEST_TO_CALLBACK"
ENV_VERIFY_TIMEOUT_SECONDS = "PHONE_AUTH_VERIFY_TIMEOUT_SECONDS"

DEFAULT_LOG_LEVEL: LogLevel = "INFO"
DEFAULT_PHONE_NUMBER_FIELD = "phoneNumber"
DEFAULT_VERIFY_CODE_FIELD = "verifyCode"
DEFAULT_VERIFY_TIMEOUT_SECONDS: float | None = 30.0

VALID_LOG_LEVELS: frozenset[LogLevel] = frozenset(
    {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"},
)
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class SettingsValidationError(ValueError):
    """Raised when static settings env vars contain invalid values."""

    @classmethod
    def for_empty_value(cls, env_var: str) -> SettingsValidationError:
        """Build error for empty non-optional env var values."""
        message = f"Invalid {env_var}: value cannot be empty."
        return cls(message)

    @classmethod
    def for_invalid_choice(
        cls,
        env_var: str,
        value: str,
        allowed_values: str,
    ) -> SettingsValidationError:
        """Build error for enum-like env vars with fixed allowlists."""
        message = f"Invalid {env_var}: {value!r}. Allowed values: {allowed_values}."
        return cls(message)

    @classmethod
    def for_invalid_pattern(
        cls,
        env_var: str,
        value: str,
        reason: str,
    ) -> SettingsValidationError:
        """Build error for regular expressions that fail to compile."""
        message = f"Invalid {env_var}: {value!r} is not a valid pattern ({reason})."
        return cls(message)

    @classmethod
    def for_invalid_timeout(cls, env_var: str, value: str) -> SettingsValidationError:
        """Build error for timeouts that are not finite non-negative numbers."""
        message = (
            f"Invalid {env_var}: {value!r}. Expected a non-negative number of "
            "seconds (0 disables the timeout)."
        )
        return cls(message)


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Resolved static configuration values for process startup."""

    log_level: LogLevel
    phone_number_field: str
    verify_code_field: str
    phone_number_pattern: re.Pattern[str] | None
    pass_request_to_callback: bool
    verify_timeout_seconds: float | None


def load_settings(environ: Mapping[str, str] | None = None) -> AppSettings:
    """Load and validate static settings from process environment."""
    env = os.environ if environ is None else environ

    return AppSettings(
        log_level=_read_log_level(env),
        phone_number_field=_read_field_name(
            env,
            env_var=ENV_PHONE_NUMBER_FIELD,
            default=DEFAULT_PHONE_NUMBER_FIELD,
        ),
        verify_code_field=_read_field_name(
            env,
            env_var=ENV_VERIFY_CODE_FIELD,
            default=DEFAULT_VERIFY_CODE_FIELD,
        ),
        phone_number_pattern=_read_phone_number_pattern(env),
        pass_request_to_callback=_read_pass_request_to_callback(env),
        verify_timeout_seconds=_read_verify_timeout(env),
    )


def _read_log_level(environ: Mapping[str, str]) -> LogLevel:
    raw = environ.get(ENV_LOG_LEVEL)
    if raw is None:
        return DEFAULT_LOG_LEVEL
    value = raw.strip().upper()
    if value in VALID_LOG_LEVELS:
        return value
    allowed = ", ".join(sorted(VALID_LOG_LEVELS))
    raise SettingsValidationError.for_invalid_choice(ENV_LOG_LEVEL, raw, allowed)


def _read_field_name(
    environ: Mapping[str, str],
    *,
    env_var: str,
    default: str,
) -> str:
    raw = environ.get(env_var)
    if raw is None:
        return default
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(env_var)
    return value


def _read_phone_number_pattern(environ: Mapping[str, str]) -> re.Pattern[str] | None:
    raw = environ.get(ENV_PHONE_NUMBER_PATTERN)
    if raw is None or not raw.strip():
        return None
    try:
        return re.compile(raw.strip())
    except re.error as exc:
        raise SettingsValidationError.for_invalid_pattern(
            ENV_PHONE_NUMBER_PATTERN,
            raw,
            str(exc),
        ) from exc


def _read_pass_request_to_callback(environ: Mapping[str, str]) -> bool:
    raw = environ.get(ENV_PASS_REQUEST_TO_CALLBACK)
    if raw is None:
        return False
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    allowed = ", ".join(sorted(_TRUE_VALUES | _FALSE_VALUES))
    raise SettingsValidationError.for_invalid_choice(
        ENV_PASS_REQUEST_TO_CALLBACK,
        raw,
        allowed,
    )


def _read_verify_timeout(environ: Mapping[str, str]) -> float | None:
    raw = environ.get(ENV_VERIFY_TIMEOUT_SECONDS)
    if raw is None:
        return DEFAULT_VERIFY_TIMEOUT_SECONDS
    value = raw.strip()
    if not value:
        raise SettingsValidationError.for_empty_value(ENV_VERIFY_TIMEOUT_SECONDS)
    try:
        seconds = float(value)
    except ValueError as exc:
        raise SettingsValidationError.for_invalid_timeout(
            ENV_VERIFY_TIMEOUT_SECONDS,
            raw,
        ) from exc
    if not math.isfinite(seconds) or seconds < 0:
        raise SettingsValidationError.for_invalid_timeout(
            ENV_VERIFY_TIMEOUT_SECONDS,
            raw,
        )
    if seconds == 0:
        return None
    return seconds
