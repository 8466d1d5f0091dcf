"""Telemetry ingest API used by the web client.

Every ingest route answers 202 with `{"recorded": bool}`. A failed write
is reported in the body and never turns into an HTTP error.
"""
# ruff: noqa: B008 : Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from hvacdiag.analytics.user_stats import get_user_stats
from hvacdiag.db.engine import get_session
from hvacdiag.logs.store import log_recorder
from hvacdiag.schemas.ingest import (
    ActivityRequest,
    ClickRequest,
    LogRequest,
    NavigationRequest,
    SearchRequest,
    SessionOpenRequest,
)
from hvacdiag.schemas.records import DeviceInfo
from hvacdiag.tracking.activity import ActivityRecorder
from hvacdiag.tracking.sessions import session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["telemetry"])

# Requests carry their own path; there is no shared location across clients.
ingest_recorder = ActivityRecorder(location=lambda: None)


def device_from_headers(request: Request) -> DeviceInfo:
    """Fingerprint for clients that send no device info of their own."""
    language = request.headers.get("accept-language", "").split(",")[0].strip() or None
    return DeviceInfo(
        user_agent=request.headers.get("user-agent"),
        language=language,
        platform=request.headers.get("sec-ch-ua-platform", "").strip('"') or None,
    )


# ── Sessions ─────────────────────────────────────────────────────────


@router.post("/sessions", status_code=status.HTTP_202_ACCEPTED)
async def open_session(body: SessionOpenRequest, request: Request) -> dict[str, Any]:
    result = await session_manager.open_session(
        user_id=body.user_id,
        device_info=body.device_info or device_from_headers(request),
        ip_address=request.client.host if request.client else None,
    )
    return {
        "recorded": result.ok,
        "sessionId": str(result.value.id) if result.value is not None else None,
    }


@router.post("/sessions/{session_id}/end", status_code=status.HTTP_202_ACCEPTED)
async def end_session(session_id: uuid.UUID) -> dict[str, bool]:
    result = await session_manager.close_session(session_id)
    return {"recorded": result.ok and bool(result.value)}


# ── Activity ─────────────────────────────────────────────────────────


@router.post("/activity", status_code=status.HTTP_202_ACCEPTED)
async def track_activity(body: ActivityRequest) -> dict[str, bool]:
    result = await ingest_recorder.record(
        body.activity_type,
        user_id=body.user_id,
        path=body.path,
        meta=body.meta,
        session_id=body.session_id,
        device_id=body.device_id,
    )
    return {"recorded": result.ok}


@router.post("/navigation", status_code=status.HTTP_202_ACCEPTED)
async def track_navigation(body: NavigationRequest) -> dict[str, bool]:
    result = await ingest_recorder.record_navigation(
        body.path,
        user_id=body.user_id,
        session_id=body.session_id,
        device_id=body.device_id,
    )
    return {"recorded": result.ok}


@router.post("/clicks", status_code=status.HTTP_202_ACCEPTED)
async def track_click(body: ClickRequest) -> dict[str, bool]:
    record = ingest_recorder.record_button_click if body.named_button else ingest_recorder.record_click
    result = await record(
        body.label,
        user_id=body.user_id,
        path=body.path,
        session_id=body.session_id,
        device_id=body.device_id,
    )
    return {"recorded": result.ok}


@router.post("/search", status_code=status.HTTP_202_ACCEPTED)
async def track_search(body: SearchRequest) -> dict[str, bool]:
    result = await ingest_recorder.record_search(
        body.system_name,
        body.error_code,
        user_id=body.user_id,
        session_id=body.session_id,
        device_id=body.device_id,
    )
    return {"recorded": result.ok, "partial": result.partial}


@router.post("/logs", status_code=status.HTTP_202_ACCEPTED)
async def append_log(body: LogRequest) -> dict[str, bool]:
    result = await log_recorder.append(
        body.level,
        body.message,
        stack_trace=body.stack_trace,
        user_id=body.user_id,
        page_path=body.page_path,
    )
    return {"recorded": result.ok}


# ── Stats ────────────────────────────────────────────────────────────


@router.get("/users/{user_id}/stats")
async def user_stats(user_id: str, db: AsyncSession = Depends(get_session)) -> dict[str, Any]:
    """`stats` is null when the statistics could not be computed."""
    stats = await get_user_stats(db, user_id)
    return {"stats": stats.model_dump(mode="json", by_alias=True) if stats else None}
