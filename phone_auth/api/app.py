"""FastAPI application factory wiring the mobile phone login flow."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import FastAPI

from phone_auth.api.authenticator import Authenticator
from phone_auth.api.routes.login import build_login_router
from phone_auth.config.logging import init_logging
from phone_auth.config.settings import load_settings
from phone_auth.strategy import MobilePhoneStrategy, MobilePhoneStrategyOptions

if TYPE_CHECKING:
    from collections.abc import Callable

    from phone_auth.config.settings import AppSettings
    from phone_auth.strategy.mobile_phone import VerifyCallback

logger = logging.getLogger(__name__)


def create_app(
    verify: VerifyCallback,
    *,
    settings: AppSettings | None = None,
    serialize_user: Callable[[object], object] | None = None,
) -> FastAPI:
    """Create a FastAPI app whose login route verifies with ``verify``."""
    resolved = load_settings() if settings is None else settings
    init_logging(resolved.log_level)

    strategy = MobilePhoneStrategy(
        MobilePhoneStrategyOptions.from_settings(resolved),
        verify,
    )
    authenticator = Authenticator(
        verify_timeout_seconds=resolved.verify_timeout_seconds,
    ).use(strategy)

    app = FastAPI(
        title="phone-auth",
        description="Phone number and verification code login",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
    )
    app.state.authenticator = authenticator
    app.include_router(
        build_login_router(
            authenticator=authenticator,
            strategy_name=strategy.name,
            serialize_user=serialize_user,
        ),
    )

    logger.info(
        "Configured %s strategy (fields=%s/%s, pattern=%s, timeout=%s)",
        strategy.name,
        resolved.phone_number_field,
        resolved.verify_code_field,
        "on" if resolved.phone_number_pattern is not None else "off",
        resolved.verify_timeout_seconds,
    )
    return app
