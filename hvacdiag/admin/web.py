"""Admin console API: analytics, log console and user administration.

JSON endpoints consumed by the admin single-page console. All routes
require HTTP Basic Auth via the verify_admin dependency.
"""
# ruff: noqa: B008 : Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from hvacdiag.admin.auth import verify_admin
from hvacdiag.admin.users import UserNotFoundError, user_administrator
from hvacdiag.analytics.admin_report import day_bounds, get_analytics_summary
from hvacdiag.config import settings
from hvacdiag.db.engine import get_session
from hvacdiag.errors import AdminOperationError, PurgeNotConfirmedError
from hvacdiag.logs.export import level_options, parse_level_filter, to_plain_text
from hvacdiag.logs.retention import enforce_log_retention
from hvacdiag.logs.store import count_logs, count_logs_by_level, query_logs
from hvacdiag.models.enums import LogLevel
from hvacdiag.schemas.ingest import CreateUserRequest, PasswordResetRequest, RoleChangeRequest
from hvacdiag.schemas.results import BanPhase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def _http_error(exc: AdminOperationError) -> HTTPException:
    if isinstance(exc, UserNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, PurgeNotConfirmedError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


def _level_or_422(level: str | None) -> LogLevel | None:
    try:
        return parse_level_filter(level)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown log level: {level}",
        ) from exc


# ── Analytics ────────────────────────────────────────────────────────


@router.get("/analytics")
async def analytics(
    start: date | None = Query(None, description="First day included (UTC)"),
    end: date | None = Query(None, description="Last day included (UTC)"),
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> JSONResponse:
    """Dashboard KPIs and top-N rankings for the date range."""
    range_start, range_end = day_bounds(start, end)
    try:
        summary = await get_analytics_summary(db, range_start, range_end)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc

    return JSONResponse(summary.model_dump(mode="json", by_alias=True))


# ── Log console ──────────────────────────────────────────────────────


@router.get("/logs")
async def logs_list(
    level: str | None = Query(None, description="Severity, or 'All'"),
    limit: int | None = Query(None, ge=1),
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> JSONResponse:
    """Newest-first log entries plus per-level triage counts.

    `counts` covers the whole table, so the Error and Critical totals stay
    visible while a level filter is applied.
    """
    selected = _level_or_422(level)
    try:
        entries = await query_logs(db, level=selected, limit=limit)
        counts = await count_logs_by_level(db)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc

    return JSONResponse({
        "logs": [entry.model_dump(mode="json") for entry in entries],
        "counts": counts,
    })


@router.get("/logs/export", response_class=PlainTextResponse)
async def logs_export(
    level: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> PlainTextResponse:
    """The currently filtered entries as plain text.

    At most `log_query_limit` newest entries are exported. `X-Total-Count`
    carries the number of matching entries and `X-Exported-Count` the number
    written, so a truncated export is visible to the operator.
    """
    selected = _level_or_422(level)
    try:
        entries = await query_logs(db, level=selected)
        total = await count_logs(db, level=selected)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc

    filename = f"app-logs-{date.today().isoformat()}.txt"
    return PlainTextResponse(
        to_plain_text(entries),
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Total-Count": str(total),
            "X-Exported-Count": str(len(entries)),
        },
    )


@router.get("/logs/levels")
async def logs_levels(admin: str = Depends(verify_admin)) -> dict[str, list[str]]:
    return {"levels": level_options()}


@router.delete("/logs")
async def logs_purge(
    days: int | None = Query(None, ge=0),
    confirm: bool = Query(False),
    admin: str = Depends(verify_admin),
) -> dict[str, Any]:
    """Delete entries older than `days`; requires `confirm=true`."""
    window = settings.telemetry.log_retention_days if days is None else days
    try:
        deleted = await enforce_log_retention(window, confirm=confirm, actor_id=admin)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc
    return {"deleted": deleted, "days": window}


# ── Users ────────────────────────────────────────────────────────────


@router.get("/users")
async def users_list(
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> JSONResponse:
    try:
        users = await user_administrator.list_users(db)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"users": [u.model_dump(mode="json") for u in users]})


@router.get("/users/{user_id}")
async def user_detail(
    user_id: str,
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> JSONResponse:
    """Role row plus per-user statistics (`stats` is null if unavailable)."""
    try:
        detail = await user_administrator.get_user_with_stats(db, user_id)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc
    return JSONResponse(detail)


@router.post("/users")
async def user_create(
    body: CreateUserRequest,
    admin: str = Depends(verify_admin),
) -> JSONResponse:
    result = await user_administrator.create_user(
        body.email, body.password, body.full_name, body.role, actor_id=admin
    )
    code = status.HTTP_201_CREATED if result.success else status.HTTP_400_BAD_REQUEST
    return JSONResponse(result.model_dump(mode="json", exclude_none=True), status_code=code)


@router.post("/users/password-reset")
async def user_password_reset(
    body: PasswordResetRequest,
    admin: str = Depends(verify_admin),
) -> dict[str, bool]:
    try:
        await user_administrator.reset_user_password(body.email, actor_id=admin)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc
    return {"success": True}


@router.post("/users/{user_id}/ban")
async def user_ban(
    user_id: str,
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> JSONResponse:
    """Two-phase ban; a partial failure answers 207 with the failed phase."""
    result = await user_administrator.ban_user(db, user_id, actor_id=admin)

    if result.success:
        code = status.HTTP_200_OK
    elif result.failed_phase == BanPhase.SESSIONS:
        code = status.HTTP_207_MULTI_STATUS
    elif result.not_found:
        code = status.HTTP_404_NOT_FOUND
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(jsonable_encoder(asdict(result)), status_code=code)


@router.post("/users/{user_id}/unban")
async def user_unban(
    user_id: str,
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> dict[str, bool]:
    try:
        await user_administrator.unban_user(db, user_id, actor_id=admin)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc
    return {"success": True}


@router.post("/users/{user_id}/role")
async def user_role(
    user_id: str,
    body: RoleChangeRequest,
    db: AsyncSession = Depends(get_session),
    admin: str = Depends(verify_admin),
) -> dict[str, Any]:
    try:
        await user_administrator.change_user_role(db, user_id, body.role, actor_id=admin)
    except AdminOperationError as exc:
        raise _http_error(exc) from exc
    return {"success": True, "role": body.role.value}
