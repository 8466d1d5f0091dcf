"""Error types shared by the recording and administration paths.

Two classes of failure exist:

- Advisory (telemetry) failures are never raised. Recorders return a
  RecordingResult carrying a RecordingFailure and log at DEBUG.
- Administrative failures are raised as AdminOperationError so the admin
  console can show the operator a readable message.
"""

from __future__ import annotations

from dataclasses import dataclass


class AdminOperationError(Exception):
    """An operator-initiated action failed; `message` is shown to the operator."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PurgeNotConfirmedError(AdminOperationError):
    """Raised when an irreversible purge is requested without confirmation."""

    def __init__(self, days: int) -> None:
        super().__init__(f"Deleting logs older than {days} days requires explicit confirmation")
        self.days = days


@dataclass(frozen=True)
class RecordingFailure:
    """Why a best-effort telemetry write did not happen."""

    operation: str
    message: str
    exception_type: str | None = None

    @classmethod
    def from_exception(cls, operation: str, exc: BaseException) -> RecordingFailure:
        return cls(operation=operation, message=str(exc), exception_type=type(exc).__name__)
