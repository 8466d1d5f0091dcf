"""Derived, non-persisted statistics.

Recomputed from a fresh snapshot on every request. Field names serialize
in camelCase (`loginCount`, `topPages`, ...) for the client and console.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CodeCount(_CamelModel):
    code: str
    count: int


class UserStats(_CamelModel):
    """Per-user behavior profile."""

    login_count: int = 0
    last_login: datetime | None = None
    most_viewed_page: str | None = None
    most_searched_codes: list[CodeCount] = Field(default_factory=list)
    total_activity_count: int = 0


class RankedItem(_CamelModel):
    label: str
    value: int


class SearchedCode(_CamelModel):
    code: str
    system: str
    count: int


class AnalyticsKpis(_CamelModel):
    total_events: int = 0
    total_searches: int = 0
    total_clicks: int = 0
    total_page_views: int = 0
    unique_users: int = 0
    unique_devices: int = 0


class AnalyticsSummary(_CamelModel):
    """Admin dashboard for one date range."""

    event_type_counts: dict[str, int] = Field(default_factory=dict)
    top_clicked_elements: list[RankedItem] = Field(default_factory=list)
    top_pages: list[RankedItem] = Field(default_factory=list)
    top_searched_codes: list[SearchedCode] = Field(default_factory=list)
    kpis: AnalyticsKpis = Field(default_factory=AnalyticsKpis)
    range_start: datetime | None = None
    range_end: datetime | None = None
