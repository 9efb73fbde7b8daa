"""Login endpoint backed by the mobile phone authentication strategy."""

# Annotations stay eager: the route's Depends() target is a local name.
from collections.abc import Callable, Mapping
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from phone_auth.api.authenticator import AuthenticatedPrincipal, Authenticator
from phone_auth.strategy import STRATEGY_NAME

LOGIN_PATH = "/auth/mobile-phone/login"


class LoginResponse(BaseModel):
    """Response payload for a successful phone number login."""

    user: Any
    info: Any = None


def build_login_router(
    *,
    authenticator: Authenticator,
    strategy_name: str = STRATEGY_NAME,
    path: str = LOGIN_PATH,
    options: Mapping[str, object] | None = None,
    serialize_user: Callable[[object], object] | None = None,
) -> APIRouter:
    """Create a router exposing ``POST path`` guarded by ``strategy_name``."""
    router = APIRouter()
    authenticate = authenticator.dependency(strategy_name, options)

    @router.post(path, tags=["auth"], response_model=LoginResponse)
    async def login(
        principal: Annotated[AuthenticatedPrincipal, Depends(authenticate)],
    ) -> LoginResponse:
        """Verify phone number credentials and return the resolved user."""
        user = principal.user
        if serialize_user is not None:
            user = serialize_user(user)
        return LoginResponse(user=user, info=principal.info)

    return router
