"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field

from app.core.tokens import ACCESS_TOKEN_TTL_SECONDS


class RegisterRequest(BaseModel):
    """New account. role is a request only; admin is granted to allow-listed names."""

    username: str = Field(..., description="Username (3-20 chars, letters, digits, underscore)")
    password: str = Field(..., description="Password (at least 6 chars)")
    role: str | None = Field(default=None, description="Requested role; anything but admin means editor")


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., description="Username")
    password: str = Field(..., description="Password")


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., description="Refresh token from /login or /refresh")


class UserSummary(BaseModel):
    """Public view of a user (never includes the password hash)."""

    username: str
    role: str


class RegisterResponse(BaseModel):
    message: str = "User registered successfully"
    user: UserSummary


class RefreshResponse(BaseModel):
    """Access/refresh pair returned by /refresh."""

    access_token: str = Field(..., description="Access token (1 hour)")
    refresh_token: str = Field(..., description="Refresh token (7 days)")
    expires_in: int = Field(default=ACCESS_TOKEN_TTL_SECONDS, description="Access token lifetime in seconds")
    token_type: str = Field(default="Bearer", description="Token type")


class LoginResponse(RefreshResponse):
    """Token pair plus the authenticated user, returned by /login."""

    user: UserSummary


class CurrentUser(BaseModel):
    """Claims of a verified access token, for dependency injection and GET /me."""

    username: str
    role: str
    iat: int | None = None
    exp: int | None = None


class UserDetail(BaseModel):
    """Stored account metadata for admins (no password hash)."""

    username: str
    role: str
    createdAt: str
    lastLogin: str | None = None


class ErrorResponse(BaseModel):
    error: str
    message: str
