"""Structured logging configuration and initialization."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

from typing_extensions import override

if TYPE_CHECKING:
    from phone_auth.config.settings import LogLevel

# Correlation ID of the request currently being authenticated
correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

REDACTED_VALUE = "[REDACTED]"
SENSITIVE_EXTRA_KEYS: frozenset[str] = frozenset(
    {"verify_code", "verifyCode", "password", "token"},
)

_STANDARD_RECORD_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    },
)


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON with secret extras redacted."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as a JSON string."""
        log_data: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "correlation_id": correlation_id.get(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_data["stack_trace"] = self.formatStack(record.stack_info)

        protected_attrs = set(log_data.keys())
        record_dict = cast("dict[str, object]", record.__dict__)
        for key, value in record_dict.items():
            if key in _STANDARD_RECORD_ATTRS or key.startswith("_"):
                continue
            rendered = REDACTED_VALUE if key in SENSITIVE_EXTRA_KEYS else value
            if key in protected_attrs:
                log_data[f"extra_{key}"] = rendered
                continue
            log_data[key] = rendered

        return json.dumps(log_data, default=repr)


def init_logging(level: LogLevel) -> None:
    """Initialize structured logging for the application."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Keep pytest's capture handler so caplog keeps working.
    for h in root_logger.handlers[:]:
        if type(h).__name__ != "LogCaptureHandler":
            root_logger.removeHandler(h)

    root_logger.addHandler(handler)
