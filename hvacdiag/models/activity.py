"""Append-only activity stream and search analytics tables.

Rows are never updated or deleted in normal operation.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hvacdiag.models.base import Base, JsonBlob, RecordMixin, utcnow


class ActivityEvent(RecordMixin, Base):
    """A page view, click or search performed by a user or anonymous device."""

    __tablename__ = "activity_events"

    user_id: Mapped[str | None] = mapped_column(String(100), index=True)
    session_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), index=True)
    device_id: Mapped[str | None] = mapped_column(String(100), index=True)

    activity_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    path: Mapped[str | None] = mapped_column(String(500))
    meta: Mapped[dict[str, Any] | None] = mapped_column(JsonBlob)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<ActivityEvent type={self.activity_type} user={self.user_id} path={self.path}>"


class SearchAnalyticsEntry(RecordMixin, Base):
    """One error-code lookup, kept for per-user search history."""

    __tablename__ = "search_analytics"

    user_id: Mapped[str | None] = mapped_column(String(100), index=True)
    system_name: Mapped[str] = mapped_column(String(200), nullable=False)
    error_code: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<SearchAnalyticsEntry code={self.error_code} system={self.system_name}>"
