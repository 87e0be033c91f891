"""Password hashing and account input policy (username/password rules, roles)."""

import hashlib
import hmac
import re
import secrets

# 16 random bytes -> 32 hex chars, stored in front of the 64-char SHA-256 digest.
SALT_BYTES = 16
SALT_HEX_LEN = SALT_BYTES * 2
DIGEST_HEX_LEN = 64

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 20
PASSWORD_MIN_LEN = 6
USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]+")

ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
ROLES = (ROLE_ADMIN, ROLE_EDITOR)

# Only these (lower-cased) usernames may hold the admin role, whatever the caller asks for.
ADMIN_USERNAMES = frozenset({"admin", "administrator"})


def _digest(plain_password: str, salt: str) -> str:
    return hashlib.sha256((plain_password + salt).encode("utf-8")).hexdigest()


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage as salt (32 hex) + SHA-256 digest (64 hex)."""
    salt = secrets.token_hex(SALT_BYTES)
    return salt + _digest(plain_password, salt)


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored salted hash. Never raises."""
    try:
        salt, expected = hashed[:SALT_HEX_LEN], hashed[SALT_HEX_LEN:]
        if len(salt) != SALT_HEX_LEN or len(expected) != DIGEST_HEX_LEN:
            return False
        return hmac.compare_digest(_digest(plain_password, salt), expected)
    except (TypeError, ValueError, AttributeError):
        return False
