"""Tests for the telemetry ingest API."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from hvacdiag.api.routes import router
from hvacdiag.db.engine import get_session
from hvacdiag.errors import RecordingFailure
from hvacdiag.schemas.records import ActivityRecord, SessionRecord
from hvacdiag.schemas.results import RecordingResult, SearchRecordingResult
from hvacdiag.schemas.stats import UserStats

OK = RecordingResult.success(ActivityRecord(activity_type="page_view"))
FAILED = RecordingResult.failed(RecordingFailure("activity.record", "db down", "OperationalError"))


@pytest.fixture
def mock_sessions():
    manager = MagicMock()
    manager.open_session = AsyncMock()
    manager.close_session = AsyncMock()
    with patch("hvacdiag.api.routes.session_manager", manager):
        yield manager


@pytest.fixture
def mock_recorder():
    recorder = MagicMock()
    for name in ("record", "record_navigation", "record_click", "record_button_click", "record_search"):
        setattr(recorder, name, AsyncMock(return_value=OK))
    with patch("hvacdiag.api.routes.ingest_recorder", recorder):
        yield recorder


@pytest.fixture
def mock_logs():
    recorder = MagicMock()
    recorder.append = AsyncMock(return_value=OK)
    with patch("hvacdiag.api.routes.log_recorder", recorder):
        yield recorder


@pytest.fixture
def client(mock_sessions, mock_recorder, mock_logs):
    async def fake_get_session():
        yield AsyncMock()

    test_app = FastAPI()
    test_app.include_router(router)
    test_app.dependency_overrides[get_session] = fake_get_session
    return TestClient(test_app)


class TestSessions:
    def test_open_returns_session_id(self, client, mock_sessions):
        session_id = uuid.uuid4()
        mock_sessions.open_session.return_value = RecordingResult.success(
            SessionRecord(id=session_id, user_id="u1", session_start=datetime.now(UTC))
        )

        resp = client.post("/api/sessions", json={"userId": "u1"}, headers={
            "User-Agent": "HVACDiag/1.0",
            "Accept-Language": "it-IT,it;q=0.9",
        })

        assert resp.status_code == 202
        assert resp.json() == {"recorded": True, "sessionId": str(session_id)}
        device = mock_sessions.open_session.call_args[1]["device_info"]
        assert device.user_agent == "HVACDiag/1.0"
        assert device.language == "it-IT"

    def test_client_device_info_wins(self, client, mock_sessions):
        mock_sessions.open_session.return_value = RecordingResult.failed(
            RecordingFailure("session.open", "db down")
        )
        resp = client.post("/api/sessions", json={
            "deviceInfo": {"userAgent": "Safari", "screenResolution": "390x844"},
        })
        assert resp.status_code == 202
        assert resp.json() == {"recorded": False, "sessionId": None}
        device = mock_sessions.open_session.call_args[1]["device_info"]
        assert device.screen_resolution == "390x844"

    def test_end(self, client, mock_sessions):
        mock_sessions.close_session.return_value = RecordingResult.success(True)
        resp = client.post(f"/api/sessions/{uuid.uuid4()}/end")
        assert resp.json() == {"recorded": True}


class TestActivity:
    def test_failure_is_still_202(self, client, mock_recorder):
        mock_recorder.record.return_value = FAILED
        resp = client.post("/api/activity", json={"activityType": "custom", "path": "/x"})
        assert resp.status_code == 202
        assert resp.json() == {"recorded": False}

    def test_navigation(self, client, mock_recorder):
        session_id = uuid.uuid4()
        client.post("/api/navigation", json={"path": "/systems", "sessionId": str(session_id)})
        assert mock_recorder.record_navigation.call_args[0][0] == "/systems"
        assert mock_recorder.record_navigation.call_args[1]["session_id"] == session_id

    def test_click_kinds(self, client, mock_recorder):
        client.post("/api/clicks", json={"label": "Save"})
        client.post("/api/clicks", json={"label": "Diagnose", "namedButton": True})
        mock_recorder.record_click.assert_awaited_once()
        mock_recorder.record_button_click.assert_awaited_once()

    def test_search_partial(self, client, mock_recorder):
        mock_recorder.record_search.return_value = SearchRecordingResult(search=FAILED, activity=OK)
        resp = client.post("/api/search", json={"systemName": "Daikin VRV", "errorCode": "U4"})
        assert resp.json() == {"recorded": False, "partial": True}

    def test_search_validation(self, client):
        resp = client.post("/api/search", json={"systemName": "", "errorCode": "U4"})
        assert resp.status_code == 422


class TestLogs:
    def test_append(self, client, mock_logs):
        resp = client.post("/api/logs", json={
            "level": "Error",
            "message": "Unhandled rejection",
            "stackTrace": {"filename": "app.js", "lineno": 3},
            "pagePath": "/diag",
        })
        assert resp.status_code == 202
        args, kwargs = mock_logs.append.call_args
        assert args[1] == "Unhandled rejection"
        assert kwargs["page_path"] == "/diag"


class TestStats:
    def test_stats(self, client):
        with patch("hvacdiag.api.routes.get_user_stats", new_callable=AsyncMock) as mock_stats:
            mock_stats.return_value = UserStats(login_count=2, total_activity_count=5)
            resp = client.get("/api/users/u1/stats")
        assert resp.json()["stats"]["loginCount"] == 2

    def test_stats_unavailable(self, client):
        with patch("hvacdiag.api.routes.get_user_stats", new_callable=AsyncMock, return_value=None):
            resp = client.get("/api/users/u1/stats")
        assert resp.json() == {"stats": None}
