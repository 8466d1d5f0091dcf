"""Shared fixtures.

Store-level tests run against an in-memory SQLite database (aiosqlite)
with every telemetry table created. Recorders take the test session
factory explicitly, so nothing touches the configured database.
"""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hvacdiag.logs.store import LogRecorder  # noqa: E402
from hvacdiag.models import Base  # noqa: E402
from hvacdiag.tracking.activity import ActivityRecorder  # noqa: E402
from hvacdiag.tracking.sessions import SessionManager  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# ── Database fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture()
async def engine():
    """In-memory SQLite engine with all telemetry tables."""
    test_engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db(session_factory):
    """Async DB session for test setup and direct store calls."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def verify_db(session_factory):
    """Fresh session for reading committed data after a recorder wrote it."""
    def _open():
        return session_factory()
    return _open


# ── Recorders bound to the test store ────────────────────────────────


@pytest.fixture
def sessions(session_factory) -> SessionManager:
    return SessionManager(session_factory)


@pytest.fixture
def recorder(session_factory) -> ActivityRecorder:
    return ActivityRecorder(session_factory)


@pytest.fixture
def logs(session_factory) -> LogRecorder:
    return LogRecorder(session_factory)
