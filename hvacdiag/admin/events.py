"""In-process event bus for SystemEvents.

User administration and log retention publish events here. Subscribers
(the audit subscriber in `hvacdiag.admin.audit`) are fed from a queue by a
single worker task, so `emit` returns as soon as the event is queued.

Usage:
    await emit(SystemEvent(event_type=EventType.USER_BANNED, user_id=user_id, actor_id=admin))

    subscribe(handler)  # async def handler(event: SystemEvent) -> None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from hvacdiag.schemas.events import SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]

_subscribers: list[EventHandler] = []
_queue: asyncio.Queue[SystemEvent] | None = None
_worker_task: asyncio.Task[None] | None = None


def subscribe(handler: EventHandler) -> None:
    if handler not in _subscribers:
        _subscribers.append(handler)
        logger.info("Registered event subscriber: %s", handler.__name__)


def unsubscribe(handler: EventHandler) -> None:
    if handler in _subscribers:
        _subscribers.remove(handler)


async def emit(event: SystemEvent) -> None:
    """Queue `event` for every subscriber."""
    global _queue
    if _queue is None:
        _queue = asyncio.Queue()
    _ensure_worker()

    await _queue.put(event)
    logger.debug("Event emitted: %s (user=%s)", event.event_type.value, event.user_id)


def _ensure_worker() -> None:
    global _worker_task
    if _worker_task is None or _worker_task.done():
        _worker_task = asyncio.create_task(_event_worker())


async def _event_worker() -> None:
    if _queue is None:
        return

    while True:
        try:
            event = await _queue.get()
        except asyncio.CancelledError:
            break
        try:
            await _deliver(event)
        finally:
            _queue.task_done()


async def _deliver(event: SystemEvent) -> None:
    """Run every subscriber on `event`; one failing subscriber does not stop the rest."""
    handlers = list(_subscribers)
    results = await asyncio.gather(*(handler(event) for handler in handlers), return_exceptions=True)
    for handler, result in zip(handlers, results, strict=True):
        if isinstance(result, Exception):
            logger.error("Subscriber %s failed on %s: %s", handler.__name__, event.event_type.value, result)


async def start_event_system() -> None:
    global _queue
    _queue = asyncio.Queue()
    _ensure_worker()
    logger.info("Event system started with %d subscribers", len(_subscribers))


async def stop_event_system() -> None:
    """Wait for queued events to be delivered, then stop the worker."""
    global _worker_task, _queue

    if _queue is not None:
        await _queue.join()

    if _worker_task is not None and not _worker_task.done():
        _worker_task.cancel()
        try:
            await _worker_task
        except asyncio.CancelledError:
            pass

    _worker_task = None
    _queue = None
    logger.info("Event system stopped")
