"""Tests for hvacdiag/tracking/sessions.py: session lifecycle."""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from hvacdiag.schemas.records import DeviceInfo
from hvacdiag.tracking.sessions import SessionManager


class TestOpenSession:
    @pytest.mark.asyncio()
    async def test_opens_active_session(self, sessions):
        """Opens a session with no end and the device fingerprint."""
        device = DeviceInfo(user_agent="Mozilla/5.0", language="it-IT", platform="Linux x86_64")

        result = await sessions.open_session("u1", device, ip_address="10.0.0.1")

        assert result.ok
        record = result.value
        assert record.id is not None
        assert record.user_id == "u1"
        assert record.is_active
        assert record.device_info["userAgent"] == "Mozilla/5.0"
        assert record.device_info["language"] == "it-IT"
        assert record.ip_address == "10.0.0.1"

    @pytest.mark.asyncio()
    async def test_anonymous_session(self, sessions):
        """Sessions may be opened without a user."""
        result = await sessions.open_session()
        assert result.ok
        assert result.value.user_id is None

    @pytest.mark.asyncio()
    async def test_store_failure_is_returned_not_raised(self):
        """Store failures come back in the result."""
        factory = MagicMock(side_effect=OperationalError("insert", {}, Exception("db down")))
        manager = SessionManager(factory)

        result = await manager.open_session("u1")

        assert not result.ok
        assert result.value is None
        assert result.failure.operation == "session.open"
        assert result.failure.exception_type == "OperationalError"


class TestCloseSession:
    @pytest.mark.asyncio()
    async def test_sets_session_end(self, sessions, db):
        """Closing sets session_end."""
        opened = await sessions.open_session("u1")

        closed = await sessions.close_session(opened.value.id)

        assert closed.ok and closed.value is True
        assert await sessions.get_active_sessions(db, "u1") == []

    @pytest.mark.asyncio()
    async def test_unknown_session(self, sessions):
        """Closing an unknown session reports False."""
        result = await sessions.close_session(uuid.uuid4())
        assert result.ok
        assert result.value is False


class TestEndAllActiveSessions:
    @pytest.mark.asyncio()
    async def test_closes_only_active_sessions_of_user(self, sessions, db):
        """Only the user's open sessions are ended."""
        first = await sessions.open_session("u1")
        await sessions.open_session("u1")
        await sessions.open_session("u2")
        await sessions.close_session(first.value.id)

        count = await sessions.end_all_active_sessions_for_user(db, "u1")
        await db.commit()

        assert count == 1
        assert await sessions.get_active_sessions(db, "u1") == []
        assert len(await sessions.get_active_sessions(db, "u2")) == 1

    @pytest.mark.asyncio()
    async def test_second_call_affects_nothing(self, sessions, db):
        """A second call affects zero rows."""
        await sessions.open_session("u1")
        await sessions.open_session("u1")

        first = await sessions.end_all_active_sessions_for_user(db, "u1")
        await db.commit()
        second = await sessions.end_all_active_sessions_for_user(db, "u1")
        await db.commit()

        assert first == 2
        assert second == 0
