"""Register, login, refresh and whoami routes plus auth dependencies (get_current_user, require_role)."""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import ValidationError

from app.core.config import Settings
from app.core.errors import ForbiddenError, InvalidTokenError
from app.core.tokens import ACCESS_ISSUER, verify_authorization
from app.schemas.auth import (
    CurrentUser,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserSummary,
)
from app.services import auth as auth_service
from app.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)
router = APIRouter()

_UNAUTHORIZED = {401: {"model": ErrorResponse}}


def get_app_settings(request: Request) -> Settings:
    """Dependency: the Settings the application was built with."""
    return request.app.state.settings


def get_store(request: Request) -> KeyValueStore | None:
    """Dependency: the store built at startup, or None when storage is not configured."""
    return request.app.state.store


def get_current_user(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> CurrentUser:
    """
    Dependency: require a valid Bearer access token and return its claims.
    Every failure is the same 401; the specific reason only goes to the log.
    """
    verification = verify_authorization(
        request.headers.get("Authorization"),
        settings.JWT_SECRET.get_secret_value(),
        ACCESS_ISSUER,
    )
    if not verification.is_valid or verification.claims is None:
        logger.warning(
            "Access token rejected",
            extra={
                "reason": verification.error.value if verification.error else "unknown",
                "path": request.url.path,
            },
        )
        raise InvalidTokenError()
    try:
        return CurrentUser.model_validate(verification.claims)
    except ValidationError:
        logger.warning(
            "Access token rejected",
            extra={"reason": "MissingClaims", "path": request.url.path},
        )
        raise InvalidTokenError()


def require_role(*roles: str) -> Callable[..., CurrentUser]:
    """Dependency factory: authenticated user whose token role is one of `roles`, else 403."""

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if current_user.role not in roles:
            raise ForbiddenError()
        return current_user

    return dependency


require_admin = require_role("admin")


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
def register(
    body: RegisterRequest,
    store: Annotated[KeyValueStore | None, Depends(get_store)],
) -> RegisterResponse:
    """Create an editor account (or admin, for allow-listed usernames)."""
    user = auth_service.register(store, body.username, body.password, body.role)
    return RegisterResponse(user=UserSummary(username=user.username, role=user.role))


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse}, **_UNAUTHORIZED},
)
def login(
    body: LoginRequest,
    store: Annotated[KeyValueStore | None, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> LoginResponse:
    """
    Authenticate with username and password; returns an access/refresh token pair.
    Send the access token as: Authorization: Bearer <access_token>
    """
    pair = auth_service.login(store, body.username, body.password, settings)
    return LoginResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        user=UserSummary(username=pair.user.username, role=pair.user.role),
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={400: {"model": ErrorResponse}, **_UNAUTHORIZED},
)
def refresh(
    body: RefreshRequest,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> RefreshResponse:
    """Trade a refresh token for a new pair. The old refresh token is not revoked."""
    pair = auth_service.refresh(body.refresh_token, settings)
    return RefreshResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.get("/me", response_model=CurrentUser, responses=_UNAUTHORIZED)
def me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    response: Response,
) -> CurrentUser:
    """Return the identity carried by the caller's access token."""
    response.headers["X-User-Role"] = current_user.role
    return current_user
