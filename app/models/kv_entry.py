"""ORM model backing the key-value store: one row per key, value is a JSON string."""

from sqlalchemy import Column, DateTime, String, Text, func

from app.models.base import Base


class KeyValueEntry(Base):
    """
    Opaque key -> JSON document entry.

    The primary key on `key` is what makes put_if_absent atomic: a second
    insert of the same key fails with IntegrityError instead of overwriting.
    """

    __tablename__ = "kv_store"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
