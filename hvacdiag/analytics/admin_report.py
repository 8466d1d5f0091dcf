"""Admin analytics report: KPIs and top-N breakdowns for a date range.

`build_analytics_summary` is pure and recomputes everything from the
snapshot on every call; there is no incremental path and no cache.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, time

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hvacdiag.analytics.ranking import frequencies, top_n
from hvacdiag.config import settings
from hvacdiag.errors import AdminOperationError
from hvacdiag.models.activity import ActivityEvent
from hvacdiag.models.base import as_utc
from hvacdiag.models.enums import ActivityType
from hvacdiag.schemas.records import ActivityRecord
from hvacdiag.schemas.stats import AnalyticsKpis, AnalyticsSummary, RankedItem, SearchedCode

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"
ROOT_PATH = "/"


def day_bounds(
    start_day: date | None, end_day: date | None
) -> tuple[datetime | None, datetime | None]:
    """Turn calendar days into an inclusive UTC datetime range."""
    start = datetime.combine(start_day, time.min, tzinfo=UTC) if start_day else None
    end = datetime.combine(end_day, time.max, tzinfo=UTC) if end_day else None
    return start, end


def in_range(event: ActivityRecord, start: datetime | None, end: datetime | None) -> bool:
    """Inclusive on both ends; an omitted bound is open."""
    if start is None and end is None:
        return True
    if event.timestamp is None:
        return False
    ts = as_utc(event.timestamp)
    if start is not None and ts < as_utc(start):
        return False
    if end is not None and ts > as_utc(end):
        return False
    return True


def _meta_text(event: ActivityRecord, key: str, default: str) -> str:
    value = (event.meta or {}).get(key)
    return str(value) if value else default


def _ranked(keys: Iterable[str], limit: int) -> list[RankedItem]:
    return [RankedItem(label=key, value=count) for key, count in top_n(frequencies(keys), limit)]


def _distinct_non_empty(values: Iterable[str | None]) -> int:
    return len({v for v in values if v})


def build_analytics_summary(
    events: Sequence[ActivityRecord],
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> AnalyticsSummary:
    """Aggregate a global activity snapshot into the admin dashboard."""
    top = settings.telemetry.admin_top_n if limit is None else limit
    selected = [e for e in events if in_range(e, start, end)]

    type_counts = frequencies(e.activity_type for e in selected)

    clicks = [e for e in selected if e.activity_type == ActivityType.BUTTON_CLICK.value]
    page_views = [e for e in selected if e.activity_type == ActivityType.PAGE_VIEW.value]
    searches = [e for e in selected if e.activity_type == ActivityType.ERROR_CODE_SEARCH.value]

    code_counts = frequencies(
        (_meta_text(e, "errorCode", UNKNOWN), _meta_text(e, "systemName", UNKNOWN))
        for e in searches
    )

    kpis = AnalyticsKpis(
        total_events=len(selected),
        total_searches=len(searches),
        total_clicks=len(clicks),
        total_page_views=len(page_views),
        unique_users=_distinct_non_empty(e.user_id for e in selected),
        unique_devices=_distinct_non_empty(e.device_id for e in selected),
    )

    return AnalyticsSummary(
        event_type_counts=dict(type_counts),
        top_clicked_elements=_ranked((_meta_text(e, "buttonLabel", UNKNOWN) for e in clicks), top),
        top_pages=_ranked((e.path or ROOT_PATH for e in page_views), top),
        top_searched_codes=[
            SearchedCode(code=code, system=system, count=count)
            for (code, system), count in top_n(code_counts, top)
        ],
        kpis=kpis,
        range_start=start,
        range_end=end,
    )


async def fetch_analytics_events(
    db: AsyncSession,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[ActivityRecord]:
    """Load the global activity snapshot for `[start, end]`, oldest first."""
    query = select(ActivityEvent)
    if start is not None:
        query = query.where(ActivityEvent.timestamp >= start)
    if end is not None:
        query = query.where(ActivityEvent.timestamp <= end)
    query = query.order_by(ActivityEvent.timestamp, ActivityEvent.id)

    try:
        result = await db.execute(query)
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch analytics events")
        raise AdminOperationError("Failed to fetch analytics data") from exc

    return [ActivityRecord.model_validate(row) for row in result.scalars().all()]


async def get_analytics_summary(
    db: AsyncSession,
    start: datetime | None = None,
    end: datetime | None = None,
) -> AnalyticsSummary:
    events = await fetch_analytics_events(db, start, end)
    return build_analytics_summary(events, start, end)
