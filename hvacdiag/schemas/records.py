"""Typed records for rows crossing the event store boundary.

The aggregators only ever see these records, never ORM rows or loose dicts.
Records are built from ORM instances via `model_validate(row)`.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hvacdiag.models.enums import LogLevel, UserRole


class DeviceInfo(BaseModel):
    """Device fingerprint captured when a session opens."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_agent: str | None = Field(default=None, alias="userAgent")
    language: str | None = None
    platform: str | None = None
    screen_resolution: str | None = Field(default=None, alias="screenResolution")

    def to_blob(self) -> dict[str, Any]:
        """Shape stored in the `device_info` column."""
        return self.model_dump(by_alias=True)


class SessionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID | None = None
    user_id: str | None = None
    session_start: datetime
    session_end: datetime | None = None
    device_info: dict[str, Any] | None = None
    ip_address: str | None = None

    @property
    def is_active(self) -> bool:
        return self.session_end is None


class ActivityRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID | None = None
    user_id: str | None = None
    session_id: uuid.UUID | None = None
    device_id: str | None = None
    activity_type: str
    path: str | None = None
    meta: dict[str, Any] | None = None
    timestamp: datetime | None = None


class SearchRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID | None = None
    user_id: str | None = None
    system_name: str
    error_code: str
    timestamp: datetime | None = None


class LogRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID | None = None
    level: LogLevel
    message: str
    stack_trace: dict[str, Any] | None = None
    user_id: str | None = None
    page_path: str | None = None
    timestamp: datetime


class RoleInfo(BaseModel):
    """One row of the admin user table."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID | None = None
    user_id: str
    email: str | None = None
    role: UserRole = UserRole.USER
    banned: bool = False
    created_at: datetime | None = None
