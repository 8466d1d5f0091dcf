"""SystemEvent schema: operational events published on the in-process bus.

Administrative actions and lifecycle milestones emit a SystemEvent. The
audit subscriber turns each one into an Info log entry for the console.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Session lifecycle
    SESSION_OPENED = "session.opened"
    SESSION_CLOSED = "session.closed"

    # User administration
    USER_BANNED = "admin.user_banned"
    USER_BAN_PARTIAL = "admin.user_ban_partial"
    USER_UNBANNED = "admin.user_unbanned"
    USER_ROLE_CHANGED = "admin.user_role_changed"
    USER_CREATED = "admin.user_created"
    PASSWORD_RESET_SENT = "admin.password_reset_sent"

    # Log console
    LOGS_PURGED = "admin.logs_purged"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class SystemEvent(BaseModel):
    """Core event that flows through the bus.

    Immutable once created. Consumed by the audit subscriber, which
    writes it to the `logs` table.
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional: not every event targets a user)
    user_id: str | None = None
    actor_id: str | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}

    def describe(self) -> str:
        """One-line human summary used as the log message."""
        target = f" user={self.user_id}" if self.user_id else ""
        actor = f" by={self.actor_id}" if self.actor_id else ""
        return f"{self.event_type.value}{target}{actor}"
