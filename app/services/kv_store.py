"""Key-value store for user records: opaque string keys mapped to JSON strings.

Two backends share one interface:
  SqlKeyValueStore      -- kv_store table via SQLAlchemy (SQLite or PostgreSQL).
  InMemoryKeyValueStore -- process-local dict, for tests and throwaway dev runs.

put_if_absent is the only conditional write. It is atomic in both backends
(primary-key constraint / lock), so two concurrent inserts of one key cannot
both succeed. Plain put is last-writer-wins.
"""

import logging
import threading
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.config import Settings
from app.core.database import build_engine, build_session_factory, check_db_connected
from app.models import Base, KeyValueEntry

logger = logging.getLogger(__name__)


class StoreUnavailableError(Exception):
    """The backing store could not be reached or failed mid-operation."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def put_if_absent(self, key: str, value: str) -> bool: ...

    def ping(self) -> bool: ...


class InMemoryKeyValueStore:
    """Thread-safe dict-backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def put_if_absent(self, key: str, value: str) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def ping(self) -> bool:
        return True


class SqlKeyValueStore:
    """Store backed by the kv_store table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "SqlKeyValueStore":
        return cls(build_engine(url, echo=echo))

    def ensure_schema(self) -> None:
        """Create kv_store if missing. Production databases are migrated with alembic."""
        try:
            Base.metadata.create_all(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise StoreUnavailableError("could not create kv_store table") from e

    def get(self, key: str) -> str | None:
        try:
            with self._session_factory() as db:
                entry = db.get(KeyValueEntry, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.error("kv_store read failed", extra={"store_key": key})
            raise StoreUnavailableError("kv_store read failed") from e

    def put(self, key: str, value: str) -> None:
        try:
            with self._session_factory() as db:
                db.merge(KeyValueEntry(key=key, value=value))
                db.commit()
        except SQLAlchemyError as e:
            logger.error("kv_store write failed", extra={"store_key": key})
            raise StoreUnavailableError("kv_store write failed") from e

    def put_if_absent(self, key: str, value: str) -> bool:
        try:
            with self._session_factory() as db:
                db.add(KeyValueEntry(key=key, value=value))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    return False
                return True
        except SQLAlchemyError as e:
            logger.error("kv_store conditional insert failed", extra={"store_key": key})
            raise StoreUnavailableError("kv_store conditional insert failed") from e

    def ping(self) -> bool:
        with self._session_factory() as db:
            return check_db_connected(db)


def build_store(settings: Settings) -> SqlKeyValueStore | None:
    """Return the configured store, or None when DATABASE_URL is unset."""
    if not settings.DATABASE_URL:
        logger.warning("DATABASE_URL is not set; user storage is not configured")
        return None
    return SqlKeyValueStore.from_url(settings.DATABASE_URL, echo=settings.DEBUG)
