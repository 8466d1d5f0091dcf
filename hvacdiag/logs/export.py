"""Plain-text export of log entries and the console level selector.

The export shape is a compatibility contract with the copy/download
buttons of the log console:

    [2024-05-01T09:30:00.000Z] [Error] Compressor fault lookup failed
    {
      "filename": "app.js",
      "lineno": 12
    }

One block per entry, blocks joined by a single newline.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime

from hvacdiag.models.base import as_utc
from hvacdiag.models.enums import ALL_LEVELS, LogLevel
from hvacdiag.schemas.records import LogRecord


def format_iso_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a `Z` suffix."""
    dt = as_utc(value)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def format_entry(entry: LogRecord) -> str:
    line = f"[{format_iso_timestamp(entry.timestamp)}] [{entry.level.value}] {entry.message}"
    if entry.stack_trace is not None:
        line += "\n" + json.dumps(entry.stack_trace, indent=2, ensure_ascii=False, default=str)
    return line


def to_plain_text(entries: Iterable[LogRecord]) -> str:
    return "\n".join(format_entry(entry) for entry in entries)


def parse_level_filter(value: str | None) -> LogLevel | None:
    """Console selector to filter: None or "All" means every level.

    Raises ValueError for an unknown level name.
    """
    if value is None or value == "" or value == ALL_LEVELS:
        return None
    return LogLevel(value)


def level_options() -> list[str]:
    """Selector entries shown to operators, in declared order."""
    return [ALL_LEVELS, *(level.value for level in LogLevel)]
