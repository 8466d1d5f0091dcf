"""Log recording and retrieval.

`LogRecorder.append` is on the advisory path and never raises: a logging
failure must not cascade into a second failure. `query_logs` feeds the
admin console, so its errors are raised as AdminOperationError.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hvacdiag.config import settings
from hvacdiag.db.engine import async_session_factory
from hvacdiag.errors import AdminOperationError, RecordingFailure
from hvacdiag.models.base import utcnow
from hvacdiag.models.enums import LogLevel
from hvacdiag.models.log_entry import LogEntry
from hvacdiag.schemas.records import LogRecord
from hvacdiag.schemas.results import RecordingResult

logger = logging.getLogger(__name__)


class LogRecorder:
    """Appends rows to the `logs` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session_factory) -> None:
        self._session_factory = session_factory

    async def append(
        self,
        level: LogLevel | str,
        message: str,
        stack_trace: dict[str, Any] | None = None,
        user_id: str | None = None,
        page_path: str | None = None,
    ) -> RecordingResult[LogRecord]:
        """Write one log entry. Failures are returned, never raised."""
        try:
            level = LogLevel(level)
            async with self._session_factory() as db:
                row = LogEntry(
                    level=level.value,
                    message=message,
                    stack_trace=stack_trace,
                    user_id=user_id or None,
                    page_path=page_path,
                    timestamp=utcnow(),
                )
                db.add(row)
                await db.commit()
                record = LogRecord.model_validate(row)
        except Exception as exc:
            # Debug only, and never through the store-forwarding handler.
            logger.debug("Log append failed (non-critical): %s", exc)
            return RecordingResult.failed(RecordingFailure.from_exception("log.append", exc))

        return RecordingResult.success(record)


async def query_logs(
    db: AsyncSession,
    level: LogLevel | None = None,
    limit: int | None = None,
) -> list[LogRecord]:
    """Newest-first log entries, optionally restricted to one severity."""
    query = select(LogEntry)
    if level is not None:
        query = query.where(LogEntry.level == level.value)
    query = query.order_by(LogEntry.timestamp.desc(), LogEntry.id.desc()).limit(
        limit or settings.telemetry.log_query_limit
    )

    try:
        result = await db.execute(query)
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch logs (level=%s)", level)
        raise AdminOperationError("Failed to fetch logs from database") from exc

    return [LogRecord.model_validate(row) for row in result.scalars().all()]


async def count_logs_by_level(db: AsyncSession) -> dict[str, int]:
    """Per-level totals over the whole table, independent of any console filter.

    Every level is present, in declared order.
    """
    query = select(LogEntry.level, func.count()).group_by(LogEntry.level)
    try:
        result = await db.execute(query)
    except SQLAlchemyError as exc:
        logger.exception("Failed to count logs by level")
        raise AdminOperationError("Failed to fetch logs from database") from exc

    counts = {level.value: 0 for level in LogLevel}
    for level, total in result.all():
        if level in counts:
            counts[level] = total
    return counts


async def count_logs(db: AsyncSession, level: LogLevel | None = None) -> int:
    """Number of stored entries matching the console filter."""
    query = select(func.count()).select_from(LogEntry)
    if level is not None:
        query = query.where(LogEntry.level == level.value)
    try:
        return (await db.execute(query)).scalar_one()
    except SQLAlchemyError as exc:
        logger.exception("Failed to count logs (level=%s)", level)
        raise AdminOperationError("Failed to fetch logs from database") from exc


# Module-level singleton
log_recorder = LogRecorder()
