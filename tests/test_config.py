"""Tests for hvacdiag/config.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hvacdiag.config import DatabaseSettings, Settings, TelemetrySettings


class TestSettings:
    def test_log_level_normalized(self):
        assert Settings(log_level="info").log_level == "INFO"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_production_flag(self):
        assert Settings(environment="production").is_production
        assert not Settings(environment="development").is_production

    def test_sqlite_detection(self):
        assert DatabaseSettings(database_url="sqlite+aiosqlite:///:memory:").is_sqlite
        assert not DatabaseSettings(database_url="postgresql+asyncpg://u:p@h/db").is_sqlite

    def test_telemetry_defaults(self, monkeypatch):
        for name in ("LOG_RETENTION_DAYS", "ADMIN_TOP_N", "USER_TOP_CODES", "CLICK_LABEL_MAX"):
            monkeypatch.delenv(name, raising=False)
        telemetry = TelemetrySettings(_env_file=None)
        assert telemetry.log_retention_days == 30
        assert telemetry.admin_top_n == 10
        assert telemetry.user_top_codes == 5
        assert telemetry.click_label_max == 100
