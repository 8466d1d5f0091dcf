"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

import logging
from enum import Enum


class LogLevel(str, Enum):
    """Log severity taxonomy, declared most-to-least severe.

    Declaration order is the order shown to operators in the log console.
    """

    CRITICAL = "Critical"
    URGENT = "Urgent"
    SHUTDOWN = "Shutdown"
    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    DEBUG = "Debug"

    @property
    def rank(self) -> int:
        """0 for the most severe level, increasing towards Debug."""
        return list(LogLevel).index(self)

    @classmethod
    def from_logging(cls, levelno: int) -> LogLevel:
        """Map a stdlib logging level number onto the taxonomy."""
        if levelno >= logging.CRITICAL:
            return cls.CRITICAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG


# Synthetic selector in the log console meaning "no level filter".
ALL_LEVELS = "All"


class UserRole(str, Enum):
    """Roles an operator can assign from the admin console."""

    ADMIN = "admin"
    MODERATOR = "moderator"
    USER = "user"


class ActivityType(str, Enum):
    """Activity types emitted by the client and read by the reports."""

    PAGE_VIEW = "page_view"
    ELEMENT_CLICK = "element_click"
    BUTTON_CLICK = "button_click"
    ERROR_CODE_SEARCH = "error_code_search"
