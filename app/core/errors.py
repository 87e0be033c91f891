"""Domain errors raised by the auth services and turned into JSON by the API layer.

Every error carries an HTTP status, a short machine-readable tag ("error") and a
human-readable message that is safe to send to the caller.
"""


class ServiceError(Exception):
    """Base class for errors that map onto a client-visible response."""

    status_code: int = 500
    error: str = "InternalError"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(ServiceError):
    status_code = 400
    error = "ValidationError"
    default_message = "Invalid request"


class AuthenticationFailed(ServiceError):
    """Bad credentials. The message never says whether the user exists."""

    status_code = 401
    error = "AuthenticationFailed"
    default_message = "Invalid username or password"


class InvalidTokenError(ServiceError):
    status_code = 401
    error = "InvalidToken"
    default_message = "Invalid or expired token"


class InvalidRefreshToken(ServiceError):
    status_code = 401
    error = "InvalidRefreshToken"
    default_message = "Refresh token is invalid or expired"


class ForbiddenError(ServiceError):
    status_code = 403
    error = "Forbidden"
    default_message = "Insufficient role for this operation"


class NotFoundError(ServiceError):
    status_code = 404
    error = "NotFound"
    default_message = "Resource not found"


class ConflictError(ServiceError):
    status_code = 409
    error = "Conflict"
    default_message = "Username is already taken"


class ServiceUnavailableError(ServiceError):
    status_code = 503
    error = "ServiceUnavailable"
    default_message = "User storage is not configured"


class InternalError(ServiceError):
    pass
