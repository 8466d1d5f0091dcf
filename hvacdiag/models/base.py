"""SQLAlchemy declarative base and shared mixins.

Every table gets `id` and `created_at` via the RecordMixin. Column types are
the generic SQLAlchemy ones (with a JSONB variant on PostgreSQL) so the same
models run against SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Structured blobs: JSONB on PostgreSQL, plain JSON elsewhere.
JsonBlob = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime; naive values are taken as UTC.

    SQLite hands back naive datetimes, PostgreSQL aware ones.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


class RecordMixin:
    """Mixin adding id (UUID) and created_at to every model."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
