"""Three-segment signed token format: base64url(header).base64url(payload).base64url(signature).

Tokens are HS256 JWTs produced and checked by PyJWT. Claim checks (expiry,
issuer) are left to the caller so that each failure maps to its own reason.
"""

from typing import Any

import jwt

ALGORITHM = "HS256"
SEGMENT_COUNT = 3

# Registered-claim validation is done by app.core.tokens, not by PyJWT.
_DECODE_OPTIONS: dict[str, Any] = {
    "verify_exp": False,
    "verify_iss": False,
    "verify_iat": False,
    "verify_nbf": False,
    "verify_aud": False,
    "verify_sub": False,
    "verify_jti": False,
}


class MalformedTokenError(ValueError):
    """Token is not three dot-separated segments, or a segment does not decode."""


class SignatureMismatchError(ValueError):
    """Signature does not match the header and payload under the given key."""


def encode(payload: dict[str, Any], key: str) -> str:
    """Serialize and sign a claims payload into a token string."""
    return jwt.encode(payload, key, algorithm=ALGORITHM)


def split(token: str) -> tuple[str, str, str]:
    """Split a token into (header, payload, signature) segments."""
    parts = token.split(".")
    if len(parts) != SEGMENT_COUNT:
        raise MalformedTokenError(f"expected {SEGMENT_COUNT} segments, got {len(parts)}")
    header, payload, signature = parts
    return header, payload, signature


def decode(token: str, key: str) -> dict[str, Any]:
    """
    Verify the signature and return the payload claims.
    Raises SignatureMismatchError or MalformedTokenError; exp and iss are not checked here.
    """
    split(token)
    try:
        return jwt.decode(token, key, algorithms=[ALGORITHM], options=_DECODE_OPTIONS)
    except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
        # InvalidSignatureError subclasses DecodeError, so it is caught first.
        raise SignatureMismatchError(str(e)) from e
    except jwt.PyJWTError as e:
        raise MalformedTokenError(str(e)) from e
