"""User records in the key-value store, role policy and the bootstrap admin seed."""

import logging
from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.config import Settings
from app.core.security import ADMIN_USERNAMES, ROLE_ADMIN, ROLE_EDITOR, hash_password
from app.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

USER_KEY_PREFIX = "user:"


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def user_key(username: str) -> str:
    """Store key for a user: usernames are unique case-insensitively."""
    return f"{USER_KEY_PREFIX}{username.lower()}"


class UserRecord(BaseModel):
    """
    Persisted account. Serialized with camelCase names (hashedPassword, createdAt,
    lastLogin) under key "user:<lower-cased username>".
    """

    model_config = ConfigDict(populate_by_name=True)

    username: str
    hashed_password: str = Field(alias="hashedPassword")
    role: Literal["admin", "editor"]
    created_at: str = Field(alias="createdAt")
    last_login: str | None = Field(default=None, alias="lastLogin")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


def new_user_record(username: str, password: str, role: str) -> UserRecord:
    """Build a fresh record; the password is hashed here and never kept in clear."""
    return UserRecord(
        username=username.lower(),
        hashed_password=hash_password(password),
        role=role,
        created_at=utc_now_iso(),
    )


def resolve_role(username: str, requested: str | None) -> str:
    """Grant admin only to allow-listed usernames; everyone else becomes editor."""
    if requested != ROLE_ADMIN:
        return ROLE_EDITOR
    if username.lower() in ADMIN_USERNAMES:
        return ROLE_ADMIN
    logger.warning(
        "Admin role requested for non-admin username; downgraded to editor",
        extra={"username": username.lower()},
    )
    return ROLE_EDITOR


class IdentityStore:
    """Reads and writes UserRecords through a KeyValueStore."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def get(self, username: str) -> UserRecord | None:
        raw = self._store.get(user_key(username))
        if raw is None:
            return None
        try:
            return UserRecord.model_validate_json(raw)
        except ValidationError:
            logger.error(
                "Stored user record is corrupt; treating as absent",
                extra={"username": username.lower()},
            )
            return None

    def create(self, record: UserRecord) -> bool:
        """Insert the record unless the username is taken. Returns False on conflict."""
        return self._store.put_if_absent(user_key(record.username), record.to_json())

    def save(self, record: UserRecord) -> None:
        self._store.put(user_key(record.username), record.to_json())


def seed_bootstrap_admin(store: KeyValueStore | None, settings: Settings) -> bool:
    """
    Insert the bootstrap admin record if it does not exist yet.
    An existing record (including a changed password) is never overwritten.
    Returns True when a record was written.
    """
    if store is None:
        logger.warning("No user storage configured; bootstrap admin not seeded")
        return False
    if settings.BOOTSTRAP_ADMIN_PASSWORD is None:
        logger.info("BOOTSTRAP_ADMIN_PASSWORD not set; skipping bootstrap admin seed")
        return False
    username = settings.BOOTSTRAP_ADMIN_USERNAME
    record = new_user_record(
        username,
        settings.BOOTSTRAP_ADMIN_PASSWORD.get_secret_value(),
        resolve_role(username, ROLE_ADMIN),
    )
    created = IdentityStore(store).create(record)
    if created:
        logger.info("Bootstrap admin seeded", extra={"username": record.username})
    return created
