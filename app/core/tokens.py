"""Access/refresh token issuance and verification.

Two kinds of token share one wire format and differ only in lifetime, issuer
tag ("iss") and signing key. The verifier checks both the key and the tag, so a
refresh token can never be replayed as an access token or the other way round.

Tokens are stateless: nothing is stored at issuance, and validity is decided by
signature, expiry and issuer alone at verification time. The role claim is
trusted until the token expires even if the stored role changes meanwhile.
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.core import token_codec
from app.core.token_codec import MalformedTokenError, SignatureMismatchError

ACCESS_TOKEN_TTL_SECONDS = 3600
REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 3600

ACCESS_ISSUER = "access"
REFRESH_ISSUER = "refresh"

BEARER_PREFIX = "Bearer "


class TokenError(str, Enum):
    """Reason a token was rejected. Logged, never shown to the caller."""

    MISSING_HEADER = "MissingHeader"
    MALFORMED_TOKEN = "MalformedToken"
    BAD_SIGNATURE = "BadSignature"
    EXPIRED = "Expired"
    WRONG_ISSUER = "WrongIssuer"


@dataclass(frozen=True)
class TokenVerification:
    is_valid: bool
    claims: dict[str, Any] | None = None
    error: TokenError | None = None


def _now(now: int | None) -> int:
    return int(time.time()) if now is None else now


def _issue(claims: Mapping[str, Any], key: str, issuer: str, ttl: int, now: int | None) -> str:
    issued_at = _now(now)
    payload = dict(claims)
    payload.update(iat=issued_at, exp=issued_at + ttl, iss=issuer)
    return token_codec.encode(payload, key)


def issue_access_token(claims: Mapping[str, Any], key: str, now: int | None = None) -> str:
    """Sign a one-hour access token carrying the given claims plus iat/exp/iss."""
    return _issue(claims, key, ACCESS_ISSUER, ACCESS_TOKEN_TTL_SECONDS, now)


def issue_refresh_token(claims: Mapping[str, Any], key: str, now: int | None = None) -> str:
    """Sign a seven-day refresh token. Use a different key than for access tokens."""
    return _issue(claims, key, REFRESH_ISSUER, REFRESH_TOKEN_TTL_SECONDS, now)


def _reject(error: TokenError) -> TokenVerification:
    return TokenVerification(is_valid=False, error=error)


def verify_token(
    token: str,
    key: str,
    expected_issuer: str,
    now: int | None = None,
) -> TokenVerification:
    """
    Check a raw token: segment count, signature, payload, expiry, issuer (in that order).
    Never raises; the first failing check decides the error.
    """
    if not isinstance(token, str):
        return _reject(TokenError.MALFORMED_TOKEN)
    try:
        claims = token_codec.decode(token, key)
    except SignatureMismatchError:
        return _reject(TokenError.BAD_SIGNATURE)
    except MalformedTokenError:
        return _reject(TokenError.MALFORMED_TOKEN)

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return _reject(TokenError.MALFORMED_TOKEN)
    if exp < _now(now):
        return _reject(TokenError.EXPIRED)

    if claims.get("iss") != expected_issuer:
        return _reject(TokenError.WRONG_ISSUER)

    return TokenVerification(is_valid=True, claims=claims)


def verify_authorization(
    authorization: str | None,
    key: str,
    expected_issuer: str,
    now: int | None = None,
) -> TokenVerification:
    """Verify the token carried in an `Authorization: Bearer <token>` header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return _reject(TokenError.MISSING_HEADER)
    return verify_token(authorization[len(BEARER_PREFIX):], key, expected_issuer, now)
