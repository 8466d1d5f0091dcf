"""Tests for the admin console API.

Covers:
- HTTP Basic Auth (401 without creds, 401 wrong password, 503 unconfigured)
- Analytics dashboard with date range
- Log console: list with whole-table triage counts, level filter, plain-text export, purge
- User administration endpoints and error translation
"""

from __future__ import annotations

import base64
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from hvacdiag.admin.users import UserNotFoundError
from hvacdiag.admin.web import router
from hvacdiag.db.engine import get_session
from hvacdiag.errors import AdminOperationError, PurgeNotConfirmedError
from hvacdiag.models.enums import LogLevel, UserRole
from hvacdiag.schemas.records import LogRecord, RoleInfo
from hvacdiag.schemas.results import BanPhase, BanResult, CreateUserResult
from hvacdiag.schemas.stats import AnalyticsKpis, AnalyticsSummary, RankedItem

# ── Fixtures ─────────────────────────────────────────────────────────


def _make_auth_header(username: str = "admin", password: str = "testpass123") -> dict[str, str]:
    """Build HTTP Basic Auth header."""
    credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {credentials}"}


def _log(level: LogLevel, message: str) -> LogRecord:
    return LogRecord(level=level, message=message, timestamp=datetime(2024, 5, 1, 9, 30, tzinfo=UTC))


@pytest.fixture
def mock_settings():
    """Patch settings to use test password."""
    with patch("hvacdiag.admin.auth.settings") as mock:
        mock.security.admin_web_password = "testpass123"
        yield mock


@pytest.fixture
def mock_queries():
    """Patch the report and log functions used by the routes."""
    with (
        patch("hvacdiag.admin.web.get_analytics_summary", new_callable=AsyncMock) as mock_summary,
        patch("hvacdiag.admin.web.query_logs", new_callable=AsyncMock) as mock_logs,
        patch("hvacdiag.admin.web.count_logs_by_level", new_callable=AsyncMock) as mock_counts,
        patch("hvacdiag.admin.web.count_logs", new_callable=AsyncMock) as mock_total,
        patch("hvacdiag.admin.web.enforce_log_retention", new_callable=AsyncMock) as mock_purge,
    ):
        mock_summary.return_value = AnalyticsSummary(
            event_type_counts={"page_view": 3},
            top_pages=[RankedItem(label="/", value=3)],
            kpis=AnalyticsKpis(total_events=3, total_page_views=3, unique_users=1),
        )
        mock_logs.return_value = [
            _log(LogLevel.CRITICAL, "compressor database offline"),
            _log(LogLevel.ERROR, "lookup failed"),
        ]
        mock_counts.return_value = {level.value: 0 for level in LogLevel} | {"Critical": 1, "Error": 1, "Info": 5}
        mock_total.return_value = 2
        mock_purge.return_value = 4
        yield {
            "summary": mock_summary,
            "logs": mock_logs,
            "counts": mock_counts,
            "total": mock_total,
            "purge": mock_purge,
        }


@pytest.fixture
def mock_admin():
    """Patch the user administrator singleton."""
    admin = MagicMock()
    for name in (
        "ban_user", "unban_user", "change_user_role", "reset_user_password",
        "create_user", "list_users", "get_user_with_stats",
    ):
        setattr(admin, name, AsyncMock())
    with patch("hvacdiag.admin.web.user_administrator", admin):
        yield admin


@pytest.fixture
def client(mock_settings, mock_queries, mock_admin):
    """Create test client with all mocks in place."""
    mock_session = AsyncMock()

    async def fake_get_session():
        yield mock_session

    test_app = FastAPI()
    test_app.include_router(router)
    test_app.dependency_overrides[get_session] = fake_get_session
    return TestClient(test_app)


# ── Auth ─────────────────────────────────────────────────────────────


class TestAuth:
    def test_401_without_credentials(self, client):
        resp = client.get("/admin/analytics")
        assert resp.status_code == 401

    def test_401_wrong_password(self, client):
        resp = client.get("/admin/analytics", headers=_make_auth_header(password="wrong"))
        assert resp.status_code == 401

    def test_200_correct_credentials(self, client):
        resp = client.get("/admin/analytics", headers=_make_auth_header())
        assert resp.status_code == 200

    def test_503_when_password_unset(self, client, mock_settings):
        mock_settings.security.admin_web_password = ""
        resp = client.get("/admin/analytics", headers=_make_auth_header())
        assert resp.status_code == 503


# ── Analytics ────────────────────────────────────────────────────────


class TestAnalytics:
    def test_camel_case_summary(self, client):
        resp = client.get("/admin/analytics", headers=_make_auth_header())
        body = resp.json()
        assert body["eventTypeCounts"] == {"page_view": 3}
        assert body["topPages"] == [{"label": "/", "value": 3}]
        assert body["kpis"]["totalPageViews"] == 3

    def test_date_range_is_whole_days(self, client, mock_queries):
        client.get("/admin/analytics?start=2024-05-01&end=2024-05-07", headers=_make_auth_header())
        _, start, end = mock_queries["summary"].call_args[0]
        assert start == datetime(2024, 5, 1, tzinfo=UTC)
        assert end.date().isoformat() == "2024-05-07"
        assert end.hour == 23

    def test_fetch_error_is_500_with_message(self, client, mock_queries):
        mock_queries["summary"].side_effect = AdminOperationError("Failed to fetch analytics data")
        resp = client.get("/admin/analytics", headers=_make_auth_header())
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Failed to fetch analytics data"}


# ── Log console ──────────────────────────────────────────────────────


class TestLogs:
    def test_list_with_counts(self, client):
        resp = client.get("/admin/logs", headers=_make_auth_header())
        body = resp.json()
        assert [entry["message"] for entry in body["logs"]] == ["compressor database offline", "lookup failed"]
        assert body["counts"]["Critical"] == 1
        assert body["counts"]["Error"] == 1
        assert body["counts"]["Info"] == 5

    def test_counts_ignore_level_filter(self, client, mock_queries):
        resp = client.get("/admin/logs?level=Info", headers=_make_auth_header())
        assert resp.json()["counts"]["Error"] == 1
        mock_queries["counts"].assert_awaited_once()

    def test_level_filter(self, client, mock_queries):
        client.get("/admin/logs?level=Error", headers=_make_auth_header())
        assert mock_queries["logs"].call_args[1]["level"] is LogLevel.ERROR

    def test_all_means_no_filter(self, client, mock_queries):
        client.get("/admin/logs?level=All", headers=_make_auth_header())
        assert mock_queries["logs"].call_args[1]["level"] is None

    def test_unknown_level_422(self, client):
        resp = client.get("/admin/logs?level=Verbose", headers=_make_auth_header())
        assert resp.status_code == 422

    def test_export_plain_text(self, client):
        resp = client.get("/admin/logs/export", headers=_make_auth_header())
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert "attachment" in resp.headers["content-disposition"]
        assert resp.text == (
            "[2024-05-01T09:30:00.000Z] [Critical] compressor database offline\n"
            "[2024-05-01T09:30:00.000Z] [Error] lookup failed"
        )

    def test_export_reports_total_and_exported_counts(self, client, mock_queries):
        mock_queries["total"].return_value = 1500
        resp = client.get("/admin/logs/export?level=Error", headers=_make_auth_header())
        assert resp.headers["x-total-count"] == "1500"
        assert resp.headers["x-exported-count"] == "2"
        assert mock_queries["total"].call_args[1]["level"] is LogLevel.ERROR

    def test_levels(self, client):
        resp = client.get("/admin/logs/levels", headers=_make_auth_header())
        assert resp.json()["levels"][0] == "All"

    def test_purge_requires_confirmation(self, client, mock_queries):
        mock_queries["purge"].side_effect = PurgeNotConfirmedError(30)
        resp = client.delete("/admin/logs?days=30", headers=_make_auth_header())
        assert resp.status_code == 400

    def test_purge_confirmed(self, client, mock_queries):
        resp = client.delete("/admin/logs?days=30&confirm=true", headers=_make_auth_header())
        assert resp.json() == {"deleted": 4, "days": 30}
        mock_queries["purge"].assert_awaited_once_with(30, confirm=True, actor_id="admin")


# ── Users ────────────────────────────────────────────────────────────


class TestUsers:
    def test_list(self, client, mock_admin):
        mock_admin.list_users.return_value = [RoleInfo(user_id="u1", role=UserRole.ADMIN)]
        resp = client.get("/admin/users", headers=_make_auth_header())
        assert resp.json()["users"][0]["role"] == "admin"

    def test_detail_not_found(self, client, mock_admin):
        mock_admin.get_user_with_stats.side_effect = UserNotFoundError("ghost")
        resp = client.get("/admin/users/ghost", headers=_make_auth_header())
        assert resp.status_code == 404

    def test_detail(self, client, mock_admin):
        mock_admin.get_user_with_stats.return_value = {"user_id": "u1", "stats": None}
        resp = client.get("/admin/users/u1", headers=_make_auth_header())
        assert resp.json() == {"user_id": "u1", "stats": None}

    def test_ban_success(self, client, mock_admin):
        mock_admin.ban_user.return_value = BanResult(
            user_id="u1", success=True, banned=True, sessions_closed=2,
            completed_phases=[BanPhase.ROLE, BanPhase.SESSIONS],
        )
        resp = client.post("/admin/users/u1/ban", headers=_make_auth_header())
        assert resp.status_code == 200
        assert resp.json()["completed_phases"] == ["role", "sessions"]

    def test_ban_partial_is_207(self, client, mock_admin):
        mock_admin.ban_user.return_value = BanResult(
            user_id="u1", banned=True, failed_phase=BanPhase.SESSIONS,
            error="User banned but active sessions were not closed: db down",
            completed_phases=[BanPhase.ROLE],
        )
        resp = client.post("/admin/users/u1/ban", headers=_make_auth_header())
        assert resp.status_code == 207
        assert resp.json()["failed_phase"] == "sessions"
        assert resp.json()["banned"] is True

    def test_ban_unknown_user(self, client, mock_admin):
        mock_admin.ban_user.return_value = BanResult(
            user_id="ghost", failed_phase=BanPhase.ROLE, not_found=True, error="User not found"
        )
        resp = client.post("/admin/users/ghost/ban", headers=_make_auth_header())
        assert resp.status_code == 404

    def test_ban_role_phase_error_is_500(self, client, mock_admin):
        mock_admin.ban_user.return_value = BanResult(
            user_id="u1", failed_phase=BanPhase.ROLE, error="Failed to ban user: User not found"
        )
        resp = client.post("/admin/users/u1/ban", headers=_make_auth_header())
        assert resp.status_code == 500

    def test_unban(self, client, mock_admin):
        resp = client.post("/admin/users/u1/unban", headers=_make_auth_header())
        assert resp.json() == {"success": True}
        assert mock_admin.unban_user.call_args[0][1] == "u1"

    def test_role_change(self, client, mock_admin):
        resp = client.post("/admin/users/u1/role", json={"role": "moderator"}, headers=_make_auth_header())
        assert resp.json() == {"success": True, "role": "moderator"}

    def test_role_change_invalid(self, client):
        resp = client.post("/admin/users/u1/role", json={"role": "root"}, headers=_make_auth_header())
        assert resp.status_code == 422

    def test_password_reset_failure(self, client, mock_admin):
        mock_admin.reset_user_password.side_effect = AdminOperationError("Failed to send password reset email")
        resp = client.post(
            "/admin/users/password-reset", json={"email": "tech@example.com"}, headers=_make_auth_header()
        )
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to send password reset email"

    def test_create_user(self, client, mock_admin):
        mock_admin.create_user.return_value = CreateUserResult(success=True, user={"id": "n1"})
        resp = client.post(
            "/admin/users",
            json={"email": "a@b.it", "password": "secret123", "fullName": "Anna"},
            headers=_make_auth_header(),
        )
        assert resp.status_code == 201
        assert resp.json() == {"success": True, "user": {"id": "n1"}}

    def test_create_user_failure(self, client, mock_admin):
        mock_admin.create_user.return_value = CreateUserResult(success=False, error="Email already registered")
        resp = client.post(
            "/admin/users",
            json={"email": "a@b.it", "password": "secret123"},
            headers=_make_auth_header(),
        )
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Email already registered"}


# ── Log console against the store ────────────────────────────────────


@pytest.fixture
def store_app(session_factory):
    """Admin router bound to the in-memory test database."""
    async def _get_session():
        async with session_factory() as session:
            yield session

    test_app = FastAPI()
    test_app.include_router(router)
    test_app.dependency_overrides[get_session] = _get_session
    return test_app


class TestLogConsoleStore:
    @pytest.mark.asyncio()
    async def test_filtered_list_keeps_triage_counts(self, store_app, logs, mock_settings):
        await logs.append(LogLevel.ERROR, "lookup failed")
        await logs.append(LogLevel.CRITICAL, "compressor database offline")
        await logs.append(LogLevel.INFO, "cache warmed")

        transport = httpx.ASGITransport(app=store_app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/admin/logs?level=Info", headers=_make_auth_header())

        body = resp.json()
        assert [entry["message"] for entry in body["logs"]] == ["cache warmed"]
        assert body["counts"]["Error"] == 1
        assert body["counts"]["Critical"] == 1
        assert body["counts"]["Info"] == 1
        assert body["counts"]["Debug"] == 0
