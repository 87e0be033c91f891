"""Registration, login and refresh flows.

Each flow raises a ServiceError subclass on failure; the API layer turns those
into JSON responses. Store outages surface as ServiceUnavailableError.
"""

import logging
import secrets
from dataclasses import dataclass

from app.core.config import Settings
from app.core.errors import (
    AuthenticationFailed,
    ConflictError,
    InputValidationError,
    InvalidRefreshToken,
    ServiceUnavailableError,
)
from app.core.security import (
    PASSWORD_MIN_LEN,
    ROLES,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    USERNAME_PATTERN,
    hash_password,
    verify_password,
)
from app.core.tokens import (
    REFRESH_ISSUER,
    issue_access_token,
    issue_refresh_token,
    verify_token,
)
from app.services.identity import IdentityStore, new_user_record, resolve_role, utc_now_iso
from app.services.kv_store import KeyValueStore, StoreUnavailableError

logger = logging.getLogger(__name__)

# Verified against when the username is unknown so that a miss costs the same
# hash computation as a wrong password.
_DUMMY_HASH: str = hash_password("timing-equalization-dummy")


@dataclass(frozen=True)
class PublicUser:
    username: str
    role: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    user: PublicUser


def _require_store(store: KeyValueStore | None) -> KeyValueStore:
    if store is None:
        raise ServiceUnavailableError()
    return store


def _normalize_username(username: str) -> str:
    return username.strip().lower()


def _validate_registration(username: str, password: str) -> None:
    if not username or not password:
        raise InputValidationError("Username and password are required")
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        raise InputValidationError(
            f"Username must be between {USERNAME_MIN_LEN} and {USERNAME_MAX_LEN} characters"
        )
    if USERNAME_PATTERN.fullmatch(username) is None:
        raise InputValidationError("Username can only contain letters, numbers, and underscores")
    if len(password) < PASSWORD_MIN_LEN:
        raise InputValidationError(
            f"Password must be at least {PASSWORD_MIN_LEN} characters long"
        )


def register(
    store: KeyValueStore | None,
    username: str,
    password: str,
    role: str | None = None,
) -> PublicUser:
    """Create an account. The username is stored lower-cased; admin is allow-list only."""
    username = _normalize_username(username)
    _validate_registration(username, password)
    store = _require_store(store)

    record = new_user_record(username, password, resolve_role(username, role))
    try:
        created = IdentityStore(store).create(record)
    except StoreUnavailableError as e:
        raise ServiceUnavailableError("User storage is unavailable") from e
    if not created:
        raise ConflictError()

    logger.info("User registered", extra={"username": record.username, "role": record.role})
    return PublicUser(username=record.username, role=record.role)


def issue_token_pair(username: str, role: str, settings: Settings, now: int | None = None) -> TokenPair:
    """Sign a fresh access/refresh pair. Each token gets its own random jti."""
    claims = {"username": username, "role": role}
    access_token = issue_access_token(
        {**claims, "jti": secrets.token_hex(8)},
        settings.JWT_SECRET.get_secret_value(),
        now,
    )
    refresh_token = issue_refresh_token(
        {**claims, "jti": secrets.token_hex(8)},
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        now,
    )
    return TokenPair(
        access_token=access_token,
        refresh_token=refresh_token,
        user=PublicUser(username=username, role=role),
    )


def login(
    store: KeyValueStore | None,
    username: str,
    password: str,
    settings: Settings,
) -> TokenPair:
    """
    Check credentials and issue a token pair.
    Unknown user and wrong password both raise the same AuthenticationFailed.
    """
    username = _normalize_username(username)
    if not username or not password:
        raise InputValidationError("Username and password are required")
    identities = IdentityStore(_require_store(store))

    try:
        record = identities.get(username)
    except StoreUnavailableError as e:
        raise ServiceUnavailableError("User storage is unavailable") from e

    if record is None:
        verify_password(password, _DUMMY_HASH)
        logger.warning("Login failed", extra={"username": username})
        raise AuthenticationFailed()
    if not verify_password(password, record.hashed_password):
        logger.warning("Login failed", extra={"username": username})
        raise AuthenticationFailed()

    record.last_login = utc_now_iso()
    try:
        identities.save(record)
    except StoreUnavailableError:
        logger.warning("Could not persist lastLogin", extra={"username": record.username})

    logger.info("Login succeeded", extra={"username": record.username, "role": record.role})
    return issue_token_pair(record.username, record.role, settings)


def refresh(refresh_token: str, settings: Settings) -> TokenPair:
    """
    Exchange a valid refresh token for a new pair. The presented token is not
    invalidated and stays usable until its own expiry.
    """
    if not refresh_token or not refresh_token.strip():
        raise InputValidationError("refresh_token is required")

    verification = verify_token(
        refresh_token.strip(),
        settings.JWT_REFRESH_SECRET.get_secret_value(),
        REFRESH_ISSUER,
    )
    if not verification.is_valid or verification.claims is None:
        logger.warning(
            "Refresh token rejected",
            extra={"reason": verification.error.value if verification.error else "unknown"},
        )
        raise InvalidRefreshToken()

    username = verification.claims.get("username")
    role = verification.claims.get("role")
    if not isinstance(username, str) or not username or role not in ROLES:
        logger.warning("Refresh token rejected", extra={"reason": "MissingClaims"})
        raise InvalidRefreshToken()

    logger.info("Tokens refreshed", extra={"username": username})
    return issue_token_pair(username, role, settings)
