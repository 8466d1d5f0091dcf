"""Log retention: age-based purge of the `logs` table.

Deletion is irreversible, so every entry point demands an explicit
`confirm=True` from its caller. Unlike the recording paths, failures here
are raised to the operator.

Idempotent: rows are selected by a cutoff date, so a second run with the
same `days` deletes nothing new.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hvacdiag.admin.events import emit
from hvacdiag.config import settings
from hvacdiag.db.engine import async_session_factory
from hvacdiag.errors import AdminOperationError, PurgeNotConfirmedError
from hvacdiag.models.base import utcnow
from hvacdiag.models.log_entry import LogEntry
from hvacdiag.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


def retention_cutoff(days: int, now: datetime | None = None) -> datetime:
    """Entries strictly older than this instant are purged."""
    if days < 0:
        msg = f"Retention days must be non-negative, got {days}"
        raise AdminOperationError(msg)
    return (now or utcnow()) - timedelta(days=days)


async def purge_older_than(
    db: AsyncSession,
    days: int,
    confirm: bool = False,
    now: datetime | None = None,
) -> int:
    """Delete log entries with `timestamp < now - days`; returns rows deleted.

    The caller owns the transaction.
    """
    if not confirm:
        raise PurgeNotConfirmedError(days)

    cutoff = retention_cutoff(days, now)
    try:
        result = await db.execute(delete(LogEntry).where(LogEntry.timestamp < cutoff))
    except SQLAlchemyError as exc:
        logger.exception("Log purge failed (days=%d)", days)
        raise AdminOperationError("Failed to delete old logs") from exc

    count = result.rowcount  # type: ignore[attr-defined]
    logger.info("Deleted %d log entries (cutoff=%s)", count, cutoff.isoformat())
    return count


async def enforce_log_retention(
    days: int | None = None,
    confirm: bool = False,
    actor_id: str | None = None,
) -> int:
    """Run the purge in its own transaction and publish LOGS_PURGED."""
    window = settings.telemetry.log_retention_days if days is None else days

    async with async_session_factory() as db:
        count = await purge_older_than(db, window, confirm=confirm)
        try:
            await db.commit()
        except SQLAlchemyError as exc:
            logger.exception("Log purge commit failed")
            raise AdminOperationError("Failed to delete old logs") from exc

    await emit(SystemEvent(
        event_type=EventType.LOGS_PURGED,
        actor_id=actor_id,
        actor_role="admin" if actor_id else "system",
        data={"days": window, "deleted": count},
        source_module="logs.retention",
    ))
    return count
