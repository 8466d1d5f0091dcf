"""Request bodies for the ingest and admin routes.

Field names accept both snake_case and the camelCase the web client sends.
"""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hvacdiag.models.enums import LogLevel, UserRole
from hvacdiag.schemas.records import DeviceInfo


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Ingest ───────────────────────────────────────────────────────────


class SessionOpenRequest(_Body):
    user_id: str | None = None
    device_info: DeviceInfo | None = None


class _Tracked(_Body):
    """Context shared by every telemetry event."""

    user_id: str | None = None
    session_id: uuid.UUID | None = None
    device_id: str | None = None


class ActivityRequest(_Tracked):
    activity_type: str = Field(min_length=1, max_length=50)
    path: str | None = None
    meta: dict[str, Any] | None = None


class NavigationRequest(_Tracked):
    path: str


class ClickRequest(_Tracked):
    label: str | None = None
    path: str | None = None
    # Named buttons are recorded as button_click and ranked on the dashboard.
    named_button: bool = False


class SearchRequest(_Tracked):
    system_name: str = Field(min_length=1)
    error_code: str = Field(min_length=1)


class LogRequest(_Body):
    level: LogLevel = LogLevel.ERROR
    message: str
    stack_trace: dict[str, Any] | None = None
    user_id: str | None = None
    page_path: str | None = None


# ── Admin ────────────────────────────────────────────────────────────


class RoleChangeRequest(_Body):
    role: UserRole


class PasswordResetRequest(_Body):
    email: str = Field(min_length=3)


class CreateUserRequest(_Body):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: str = ""
    role: UserRole = UserRole.USER
