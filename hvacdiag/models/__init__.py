"""SQLAlchemy ORM models for the telemetry store.

Import all models here so Base.metadata.create_all() discovers them.
"""

from __future__ import annotations

from hvacdiag.models.activity import ActivityEvent, SearchAnalyticsEntry
from hvacdiag.models.base import Base
from hvacdiag.models.enums import ALL_LEVELS, ActivityType, LogLevel, UserRole
from hvacdiag.models.log_entry import LogEntry
from hvacdiag.models.role import RoleRecord
from hvacdiag.models.session import UserSession

__all__ = [
    # Base
    "Base",
    # Models
    "UserSession",
    "ActivityEvent",
    "SearchAnalyticsEntry",
    "LogEntry",
    "RoleRecord",
    # Enums
    "ActivityType",
    "LogLevel",
    "UserRole",
    "ALL_LEVELS",
]
