"""Pydantic schemas for the hosted auth and functions backend."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class AuthUser(BaseModel):
    """Subset of the backend's user object that telemetry relies on."""

    model_config = ConfigDict(extra="allow")

    id: str
    email: str | None = None
    role: str | None = None


class FunctionError(BaseModel):
    message: str = ""
    status_code: int | None = None


class FunctionResult(BaseModel):
    """Either `data` or `error` is set, never both."""

    data: Any = None
    error: FunctionError | None = None
