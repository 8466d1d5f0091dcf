"""Audit subscriber: persists every SystemEvent as an Info log entry.

Registered on the event bus at startup, so the log console doubles as the admin
audit trail. Never raises: the log recorder returns its failures instead.
"""

from __future__ import annotations

import logging

from hvacdiag.admin.events import EventHandler
from hvacdiag.logs.store import LogRecorder, log_recorder
from hvacdiag.models.enums import LogLevel
from hvacdiag.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


def make_audit_subscriber(recorder: LogRecorder = log_recorder) -> EventHandler:
    """Build an event handler that writes through `recorder`."""

    async def log_on_event(event: SystemEvent) -> None:
        outcome = await recorder.append(
            LogLevel.INFO,
            event.describe(),
            stack_trace={
                "event_type": event.event_type.value,
                "actor_id": event.actor_id,
                "data": event.data,
            },
            user_id=event.user_id,
        )
        if not outcome.ok:
            logger.debug("Failed to persist audit event %s", event.event_type.value)

    return log_on_event


log_on_event = make_audit_subscriber()
