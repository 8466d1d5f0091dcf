"""Session lifecycle tracking.

Opening and closing a session is advisory: store errors come back as a
failed RecordingResult and never reach the caller's primary flow. Bulk
closing for a ban is administrative and lets errors propagate.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hvacdiag.db.engine import async_session_factory
from hvacdiag.errors import RecordingFailure
from hvacdiag.models.base import utcnow
from hvacdiag.models.session import UserSession
from hvacdiag.schemas.records import DeviceInfo, SessionRecord
from hvacdiag.schemas.results import RecordingResult

logger = logging.getLogger(__name__)


class SessionManager:
    """Opens and closes `sessions` rows.

    Advisory operations use their own DB session from `session_factory`
    so they can run detached from any request transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session_factory) -> None:
        self._session_factory = session_factory

    async def open_session(
        self,
        user_id: str | None = None,
        device_info: DeviceInfo | dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> RecordingResult[SessionRecord]:
        """Write a new active session and return it as the session handle."""
        if isinstance(device_info, DeviceInfo):
            device_blob: dict[str, Any] | None = device_info.to_blob()
        else:
            device_blob = device_info

        try:
            async with self._session_factory() as db:
                row = UserSession(
                    user_id=user_id or None,
                    session_start=utcnow(),
                    session_end=None,
                    device_info=device_blob,
                    ip_address=ip_address,
                )
                db.add(row)
                await db.commit()
                record = SessionRecord.model_validate(row)
        except Exception as exc:
            logger.debug("Error creating user session: %s", exc)
            return RecordingResult.failed(RecordingFailure.from_exception("session.open", exc))

        logger.debug("Session opened: %s (user=%s)", record.id, user_id)
        return RecordingResult.success(record)

    async def close_session(self, session_id: uuid.UUID) -> RecordingResult[bool]:
        """Set `session_end = now`. Value is False when no row matched."""
        try:
            async with self._session_factory() as db:
                result = await db.execute(
                    update(UserSession)
                    .where(UserSession.id == session_id)
                    .values(session_end=utcnow())
                )
                await db.commit()
        except Exception as exc:
            logger.debug("Error ending user session %s: %s", session_id, exc)
            return RecordingResult.failed(RecordingFailure.from_exception("session.close", exc))

        return RecordingResult.success(bool(result.rowcount))  # type: ignore[attr-defined]

    async def end_all_active_sessions_for_user(self, db: AsyncSession, user_id: str) -> int:
        """Close every active session of `user_id`; returns rows affected.

        Only rows with `session_end IS NULL` match, so a second call is a no-op.
        The caller owns the transaction.
        """
        result = await db.execute(
            update(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.session_end.is_(None),
            )
            .values(session_end=utcnow())
        )
        count = result.rowcount  # type: ignore[attr-defined]
        logger.info("Closed %d active sessions for user %s", count, user_id)
        return count

    async def get_active_sessions(self, db: AsyncSession, user_id: str) -> list[SessionRecord]:
        result = await db.execute(
            select(UserSession)
            .where(UserSession.user_id == user_id, UserSession.session_end.is_(None))
            .order_by(UserSession.session_start.desc())
        )
        return [SessionRecord.model_validate(row) for row in result.scalars().all()]


# Module-level singleton
session_manager = SessionManager()
