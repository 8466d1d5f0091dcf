"""Telemetry recording: sessions, activity events and error capture."""

from hvacdiag.tracking.activity import activity_recorder
from hvacdiag.tracking.sessions import session_manager

__all__ = ["activity_recorder", "session_manager"]
