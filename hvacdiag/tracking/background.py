"""Fire-and-forget scheduling for telemetry writes.

Recording coroutines are scheduled on the running loop and never awaited by
the caller. A strong reference is kept until each task finishes so the
event loop cannot garbage-collect it mid-flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)

_pending: set[asyncio.Task[Any]] = set()


def spawn(coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
    """Schedule `coro` without waiting for it.

    Returns None (and drops the coroutine) when no event loop is running.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        logger.debug("No running event loop; telemetry write dropped")
        return None

    task = loop.create_task(coro)
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


def pending_count() -> int:
    return len(_pending)


async def drain(timeout: float | None = 5.0) -> None:
    """Wait for in-flight telemetry writes, e.g. during shutdown."""
    if not _pending:
        return
    _, not_done = await asyncio.wait(set(_pending), timeout=timeout)
    if not_done:
        logger.warning("%d telemetry writes still pending at drain timeout", len(not_done))
