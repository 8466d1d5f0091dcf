"""LogEntry model: leveled application log persisted for the admin console.

Rows are immutable; the only delete path is the age-based retention purge.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hvacdiag.models.base import Base, JsonBlob, RecordMixin, utcnow


class LogEntry(RecordMixin, Base):
    """A single application log line."""

    __tablename__ = "logs"

    level: Mapped[str] = mapped_column(String(20), nullable=False, index=True, comment="LogLevel value")
    message: Mapped[str] = mapped_column(Text, nullable=False)
    stack_trace: Mapped[dict[str, Any] | None] = mapped_column(JsonBlob)

    user_id: Mapped[str | None] = mapped_column(String(100), index=True)
    page_path: Mapped[str | None] = mapped_column(String(500))

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<LogEntry level={self.level} message={self.message[:40]!r}>"
