"""Configuration module for phone_auth."""

from .logging import correlation_id, init_logging
from .settings import AppSettings, SettingsValidationError, load_settings

__all__ = [
    "AppSettings",
    "SettingsValidationError",
    "correlation_id",
    "init_logging",
    "load_settings",
]
