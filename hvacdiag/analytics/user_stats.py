"""Per-user statistics.

`compute_user_stats` is a pure function over three snapshots; it performs
no I/O and mutates nothing. `get_user_stats` fetches the snapshots and
returns None when the fetch fails. Callers must read None as "statistics
unavailable", never as "no activity".
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hvacdiag.analytics.ranking import frequencies, most_frequent, top_n
from hvacdiag.config import settings
from hvacdiag.models.activity import ActivityEvent, SearchAnalyticsEntry
from hvacdiag.models.base import as_utc
from hvacdiag.models.enums import ActivityType
from hvacdiag.models.session import UserSession
from hvacdiag.schemas.records import ActivityRecord, SearchRecord, SessionRecord
from hvacdiag.schemas.stats import CodeCount, UserStats

logger = logging.getLogger(__name__)

UNKNOWN_PATH = "unknown"


def compute_user_stats(
    sessions: Sequence[SessionRecord],
    activities: Sequence[ActivityRecord],
    searches: Sequence[SearchRecord],
    top_codes: int | None = None,
) -> UserStats:
    """Derive a UserStats profile from one user's snapshots."""
    limit = settings.telemetry.user_top_codes if top_codes is None else top_codes

    login_count = sum(1 for s in sessions if s.session_end is not None)

    last_login = None
    if sessions:
        newest = sorted(sessions, key=lambda s: as_utc(s.session_start), reverse=True)[0]
        last_login = newest.session_start

    most_viewed_page = most_frequent(
        a.path or UNKNOWN_PATH
        for a in activities
        if a.activity_type == ActivityType.PAGE_VIEW.value
    )

    code_counts = frequencies(s.error_code for s in searches)
    most_searched = [CodeCount(code=code, count=count) for code, count in top_n(code_counts, limit)]

    return UserStats(
        login_count=login_count,
        last_login=last_login,
        most_viewed_page=most_viewed_page,
        most_searched_codes=most_searched,
        total_activity_count=len(activities),
    )


async def fetch_user_snapshot(
    db: AsyncSession, user_id: str
) -> tuple[list[SessionRecord], list[ActivityRecord], list[SearchRecord]]:
    """Load one user's sessions (newest first), activity and searches.

    Activity and searches are ordered by (timestamp, id) so tie-breaking in
    the rankings is reproducible between calls.
    """
    sessions_result = await db.execute(
        select(UserSession)
        .where(UserSession.user_id == user_id)
        .order_by(UserSession.session_start.desc())
    )
    activity_result = await db.execute(
        select(ActivityEvent)
        .where(ActivityEvent.user_id == user_id)
        .order_by(ActivityEvent.timestamp, ActivityEvent.id)
    )
    search_result = await db.execute(
        select(SearchAnalyticsEntry)
        .where(SearchAnalyticsEntry.user_id == user_id)
        .order_by(SearchAnalyticsEntry.timestamp, SearchAnalyticsEntry.id)
    )

    sessions = [SessionRecord.model_validate(row) for row in sessions_result.scalars().all()]
    activities = [ActivityRecord.model_validate(row) for row in activity_result.scalars().all()]
    searches = [SearchRecord.model_validate(row) for row in search_result.scalars().all()]
    return sessions, activities, searches


async def get_user_stats(db: AsyncSession, user_id: str) -> UserStats | None:
    """Fetch and aggregate; None when the snapshot cannot be read."""
    try:
        sessions, activities, searches = await fetch_user_snapshot(db, user_id)
    except Exception:
        logger.warning("Error getting user stats for %s", user_id, exc_info=True)
        return None
    return compute_user_stats(sessions, activities, searches)
