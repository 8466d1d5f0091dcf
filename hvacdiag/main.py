"""FastAPI application entry point: wires everything together.

Usage:
    python -m hvacdiag.main

Serves the telemetry ingest API (/api) and the admin console API (/admin).
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from hvacdiag.admin.audit import log_on_event
from hvacdiag.admin.events import emit, start_event_system, stop_event_system, subscribe
from hvacdiag.admin.web import router as admin_router
from hvacdiag.api.routes import router as ingest_router
from hvacdiag.config import settings
from hvacdiag.db.engine import db_lifespan
from hvacdiag.schemas.events import EventType, SystemEvent
from hvacdiag.tracking.background import drain
from hvacdiag.tracking.capture import LogStoreHandler, install_exception_hooks

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting hvacdiag telemetry (env=%s)", settings.environment)

    # 1. Database
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Event system
        await start_event_system()

        # 3. Audit trail: admin events become Info log entries
        subscribe(log_on_event)
        logger.info("Audit logging subscriber registered")

        # 4. Unhandled error capture
        store_handler = LogStoreHandler()
        logging.getLogger().addHandler(store_handler)
        uninstall_hooks = install_exception_hooks(loop=asyncio.get_running_loop())

        await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="main"))

        try:
            yield
        finally:
            # Shutdown in reverse order
            logger.info("Shutting down hvacdiag telemetry...")
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))

            uninstall_hooks()
            logging.getLogger().removeHandler(store_handler)

            await stop_event_system()
            await drain()
            logger.info("Pending telemetry writes drained")

    logger.info("hvacdiag telemetry shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="HVAC Diagnostics Telemetry API",
    description="User activity telemetry, log console and admin reporting",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(ingest_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "hvacdiag.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
