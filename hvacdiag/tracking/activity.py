"""Activity recording: page views, clicks and error-code searches.

Every method is best-effort: a failed write is logged at DEBUG and returned
as a failed RecordingResult. Nothing here raises into the user's action.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hvacdiag.config import settings
from hvacdiag.db.engine import async_session_factory
from hvacdiag.errors import RecordingFailure
from hvacdiag.models.activity import ActivityEvent, SearchAnalyticsEntry
from hvacdiag.models.base import utcnow
from hvacdiag.models.enums import ActivityType
from hvacdiag.schemas.records import ActivityRecord, SearchRecord
from hvacdiag.schemas.results import RecordingResult, SearchRecordingResult

logger = logging.getLogger(__name__)


def truncate_label(label: str | None, limit: int | None = None) -> str:
    """Human-readable click label, whitespace-trimmed and capped."""
    max_len = settings.telemetry.click_label_max if limit is None else limit
    return (label or "").strip()[:max_len]


class ActivityRecorder:
    """Appends rows to `activity_events` and `search_analytics`.

    Args:
        session_factory: Source of short-lived DB sessions for each write.
        location: Returns the current navigation location; used when a
            call omits `path`. Without it, the path of the last
            `record_navigation` is used.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        location: Callable[[], str | None] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._location = location
        self.current_path: str | None = None

    async def record(
        self,
        activity_type: str,
        user_id: str | None = None,
        path: str | None = None,
        meta: dict[str, Any] | None = None,
        session_id: uuid.UUID | None = None,
        device_id: str | None = None,
    ) -> RecordingResult[ActivityRecord]:
        """Append one activity event."""
        if path is None:
            path = self._location() if self._location is not None else self.current_path

        try:
            async with self._session_factory() as db:
                row = ActivityEvent(
                    user_id=user_id or None,
                    session_id=session_id,
                    device_id=device_id or None,
                    activity_type=activity_type,
                    path=path,
                    meta=meta or None,
                    timestamp=utcnow(),
                )
                db.add(row)
                await db.commit()
                record = ActivityRecord.model_validate(row)
        except Exception as exc:
            logger.debug("Activity tracking failed (non-critical): %s %s", activity_type, exc)
            return RecordingResult.failed(RecordingFailure.from_exception("activity.record", exc))

        return RecordingResult.success(record)

    async def record_navigation(
        self,
        path: str,
        user_id: str | None = None,
        session_id: uuid.UUID | None = None,
        device_id: str | None = None,
    ) -> RecordingResult[ActivityRecord]:
        """One `page_view` per route change."""
        self.current_path = path
        return await self.record(
            ActivityType.PAGE_VIEW.value,
            user_id=user_id,
            path=path,
            session_id=session_id,
            device_id=device_id,
        )

    async def record_click(
        self,
        label: str | None,
        user_id: str | None = None,
        path: str | None = None,
        session_id: uuid.UUID | None = None,
        device_id: str | None = None,
    ) -> RecordingResult[ActivityRecord]:
        """One `element_click` per click on a button or link."""
        return await self.record(
            ActivityType.ELEMENT_CLICK.value,
            user_id=user_id,
            path=path,
            meta={"label": truncate_label(label)},
            session_id=session_id,
            device_id=device_id,
        )

    async def record_button_click(
        self,
        label: str | None,
        user_id: str | None = None,
        path: str | None = None,
        session_id: uuid.UUID | None = None,
        device_id: str | None = None,
    ) -> RecordingResult[ActivityRecord]:
        """A named `button_click`, ranked in the admin top-clicked list."""
        return await self.record(
            ActivityType.BUTTON_CLICK.value,
            user_id=user_id,
            path=path,
            meta={"buttonLabel": truncate_label(label)},
            session_id=session_id,
            device_id=device_id,
        )

    async def record_search(
        self,
        system_name: str,
        error_code: str,
        user_id: str | None = None,
        session_id: uuid.UUID | None = None,
        device_id: str | None = None,
    ) -> SearchRecordingResult:
        """Write the search to `search_analytics` and to the activity stream.

        The two writes are independent; if one fails the other is kept.
        """
        search = await self._insert_search(system_name, error_code, user_id)
        activity = await self.record(
            ActivityType.ERROR_CODE_SEARCH.value,
            user_id=user_id,
            meta={"errorCode": error_code, "systemName": system_name},
            session_id=session_id,
            device_id=device_id,
        )
        if search.ok != activity.ok:
            logger.debug(
                "Partial search recording for %s/%s (search=%s activity=%s)",
                system_name,
                error_code,
                search.ok,
                activity.ok,
            )
        return SearchRecordingResult(search=search, activity=activity)

    async def _insert_search(
        self, system_name: str, error_code: str, user_id: str | None
    ) -> RecordingResult[SearchRecord]:
        try:
            async with self._session_factory() as db:
                row = SearchAnalyticsEntry(
                    user_id=user_id or None,
                    system_name=system_name,
                    error_code=error_code,
                    timestamp=utcnow(),
                )
                db.add(row)
                await db.commit()
                record = SearchRecord.model_validate(row)
        except Exception as exc:
            logger.debug("Search analytics tracking failed (non-critical): %s", exc)
            return RecordingResult.failed(RecordingFailure.from_exception("search.record", exc))

        return RecordingResult.success(record)


# Module-level singleton
activity_recorder = ActivityRecorder()
