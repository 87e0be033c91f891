"""Pydantic request/response schemas."""

from app.schemas.auth import (
    CurrentUser,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    RegisterResponse,
    UserDetail,
    UserSummary,
)
from app.schemas.health import HealthResponse

__all__ = [
    "CurrentUser",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "RefreshRequest",
    "RefreshResponse",
    "RegisterRequest",
    "RegisterResponse",
    "UserDetail",
    "UserSummary",
]
