"""Forward unhandled errors to the log store.

Three sources feed the `logs` table at Error severity (Critical for
`logging.CRITICAL` records):

- `LogStoreHandler`: stdlib logging records at or above the capture level.
- `sys.excepthook`: uncaught exceptions on the main thread.
- the asyncio loop exception handler: exceptions nobody retrieved.

Writes are fire-and-forget. Loggers on the recording path itself are
excluded so a failing write cannot feed back into the handler.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import traceback
from collections.abc import Callable
from types import TracebackType
from typing import Any

from hvacdiag.config import settings
from hvacdiag.logs.store import LogRecorder, log_recorder
from hvacdiag.models.enums import LogLevel
from hvacdiag.tracking.background import spawn

logger = logging.getLogger(__name__)

_EXCLUDED_LOGGERS = (
    "hvacdiag.logs",
    "hvacdiag.tracking",
    "sqlalchemy",
    "aiosqlite",
    "asyncpg",
)


def exception_context(exc: BaseException) -> dict[str, Any]:
    """Where the exception was raised, plus the formatted traceback."""
    frames = traceback.extract_tb(exc.__traceback__)
    last = frames[-1] if frames else None
    return {
        "filename": last.filename if last else None,
        "lineno": last.lineno if last else None,
        "exception_type": type(exc).__name__,
        "traceback": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }


class LogStoreHandler(logging.Handler):
    """logging.Handler that appends records to the log store."""

    def __init__(self, recorder: LogRecorder = log_recorder, level: int | str | None = None) -> None:
        super().__init__(level=settings.telemetry.capture_log_level if level is None else level)
        self._recorder = recorder

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(_EXCLUDED_LOGGERS):
            return
        try:
            context: dict[str, Any] = {
                "logger": record.name,
                "filename": record.pathname,
                "lineno": record.lineno,
            }
            if record.exc_info and record.exc_info[1] is not None:
                context.update(exception_context(record.exc_info[1]))
            spawn(self._recorder.append(
                LogLevel.from_logging(record.levelno),
                record.getMessage(),
                stack_trace=context,
            ))
        except Exception:
            self.handleError(record)


def _submit(recorder: LogRecorder, message: str, context: dict[str, Any]) -> None:
    coro = recorder.append(LogLevel.ERROR, message, stack_trace=context)
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        # Outside any loop (interpreter shutting down): write synchronously.
        asyncio.run(coro)
        return
    spawn(coro)


def install_exception_hooks(
    recorder: LogRecorder = log_recorder,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[], None]:
    """Hook `sys.excepthook` and the loop's exception handler.

    Previous handlers still run after the write is scheduled. Returns a
    callable that restores them.
    """
    previous_hook = sys.excepthook

    def _excepthook(
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            _submit(recorder, str(exc) or exc_type.__name__, exception_context(exc))
        previous_hook(exc_type, exc, tb)

    sys.excepthook = _excepthook

    target_loop = loop
    previous_handler = None
    if target_loop is not None:
        previous_handler = target_loop.get_exception_handler()

        def _loop_handler(event_loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
            exc = context.get("exception")
            message = context.get("message") or (str(exc) if exc else "Unhandled error in event loop")
            details = exception_context(exc) if isinstance(exc, BaseException) else {}
            spawn(recorder.append(LogLevel.ERROR, message, stack_trace=details or None))
            if previous_handler is not None:
                previous_handler(event_loop, context)
            else:
                event_loop.default_exception_handler(context)

        target_loop.set_exception_handler(_loop_handler)

    logger.info("Unhandled error capture installed")

    def uninstall() -> None:
        sys.excepthook = previous_hook
        if target_loop is not None:
            target_loop.set_exception_handler(previous_handler)

    return uninstall
