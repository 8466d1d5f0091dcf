"""UserSession model: one bounded interval of user/device presence.

`session_end` stays NULL while the session is active. Once set the session
is terminal.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from hvacdiag.models.base import Base, JsonBlob, RecordMixin, utcnow


class UserSession(RecordMixin, Base):
    """A tracked user/device session."""

    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_user_active", "user_id", "session_end"),)

    user_id: Mapped[str | None] = mapped_column(String(100), index=True)

    session_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    session_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # {"userAgent", "language", "platform", "screenResolution"}
    device_info: Mapped[dict[str, Any] | None] = mapped_column(JsonBlob)
    ip_address: Mapped[str | None] = mapped_column(String(64))

    @property
    def is_active(self) -> bool:
        return self.session_end is None

    def __repr__(self) -> str:
        return f"<UserSession id={self.id} user={self.user_id} active={self.is_active}>"
