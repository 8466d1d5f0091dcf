"""Result types for best-effort recording and two-phase admin operations.

Recording never raises: every recorder returns a RecordingResult that the
caller is free to discard. Keeping the failure in the return type makes the
"non-critical" contract visible at every call site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from hvacdiag.errors import RecordingFailure

T = TypeVar("T")


@dataclass(frozen=True)
class RecordingResult(Generic[T]):
    """Outcome of one telemetry write."""

    value: T | None = None
    failure: RecordingFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> RecordingResult[T]:
        return cls(value=value)

    @classmethod
    def failed(cls, failure: RecordingFailure) -> RecordingResult[T]:
        return cls(failure=failure)


@dataclass(frozen=True)
class SearchRecordingResult:
    """A search is written twice; each write succeeds or fails on its own."""

    search: RecordingResult[Any]
    activity: RecordingResult[Any]

    @property
    def ok(self) -> bool:
        return self.search.ok and self.activity.ok

    @property
    def partial(self) -> bool:
        return self.search.ok != self.activity.ok


class BanPhase(str, Enum):
    """The two mutations performed by a ban."""

    ROLE = "role"
    SESSIONS = "sessions"


@dataclass
class BanResult:
    """Summary of a ban, naming the phase that failed (if any).

    A failure in the SESSIONS phase leaves `banned=True`: the role flag is
    not rolled back, so the operator may need to close sessions by hand.
    """

    user_id: str
    success: bool = False
    banned: bool = False
    sessions_closed: int = 0
    failed_phase: BanPhase | None = None
    not_found: bool = False
    error: str | None = None
    completed_phases: list[BanPhase] = field(default_factory=list)


class CreateUserResult(BaseModel):
    """Outcome of the remote `create-user` function."""

    success: bool
    user: dict[str, Any] | None = None
    error: str | None = None
