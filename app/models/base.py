"""SQLAlchemy declarative Base shared by the store table and alembic autogenerate."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all ORM models (currently only KeyValueEntry)."""
