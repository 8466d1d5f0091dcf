"""Auth-aware activity tracker for one client.

Resolves the signed-in user, opens a session for them and keeps the
current user in sync with auth-state changes. Every event it records
carries the user id and session handle, so callers never thread them
by hand.
"""

from __future__ import annotations

import logging
from typing import Any

from hvacdiag.integrations.backend.client import AuthSubscription, BackendAuthClient, auth_client
from hvacdiag.integrations.backend.schemas import AuthUser
from hvacdiag.models.enums import ActivityType
from hvacdiag.schemas.records import ActivityRecord, DeviceInfo, SessionRecord
from hvacdiag.schemas.results import RecordingResult, SearchRecordingResult
from hvacdiag.tracking.activity import ActivityRecorder
from hvacdiag.tracking.sessions import SessionManager, session_manager

logger = logging.getLogger(__name__)


class UserActivityTracker:
    """Per-client tracking context.

    Usage:
        tracker = UserActivityTracker(device_info=DeviceInfo(platform="web"))
        await tracker.start(access_token, path="/")
        await tracker.navigate("/diagnostics")
        await tracker.search("Daikin VRV", "U4")
        await tracker.close()
    """

    def __init__(
        self,
        auth: BackendAuthClient = auth_client,
        sessions: SessionManager = session_manager,
        recorder: ActivityRecorder | None = None,
        device_info: DeviceInfo | None = None,
        device_id: str | None = None,
    ) -> None:
        self._auth = auth
        self._sessions = sessions
        self._recorder = recorder or ActivityRecorder()
        self._device_info = device_info
        self._device_id = device_id
        self._subscription: AuthSubscription | None = None
        self.current_user: AuthUser | None = None
        self.session: SessionRecord | None = None

    @property
    def user_id(self) -> str | None:
        return self.current_user.id if self.current_user else None

    async def start(self, access_token: str | None = None, path: str | None = None) -> None:
        """Resolve the user, open their session and record the first page view."""
        self.current_user = await self._auth.get_current_user(access_token)

        if self.current_user is not None:
            opened = await self._sessions.open_session(self.current_user.id, self._device_info)
            if opened.ok:
                self.session = opened.value

        self._subscription = self._auth.on_auth_state_change(self._on_auth_change)

        if path is not None:
            await self.navigate(path)
        else:
            await self.track_activity(ActivityType.PAGE_VIEW.value)

    def _on_auth_change(self, event: str, user: AuthUser | None) -> None:
        logger.debug("Auth state changed: %s", event)
        self.current_user = user

    async def track_activity(
        self,
        activity_type: str,
        path: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> RecordingResult[ActivityRecord]:
        return await self._recorder.record(
            activity_type,
            user_id=self.user_id,
            path=path,
            meta=meta,
            session_id=self.session.id if self.session else None,
            device_id=self._device_id,
        )

    async def navigate(self, path: str) -> RecordingResult[ActivityRecord]:
        return await self._recorder.record_navigation(
            path,
            user_id=self.user_id,
            session_id=self.session.id if self.session else None,
            device_id=self._device_id,
        )

    async def click(self, label: str | None, named_button: bool = False) -> RecordingResult[ActivityRecord]:
        record = self._recorder.record_button_click if named_button else self._recorder.record_click
        return await record(
            label,
            user_id=self.user_id,
            session_id=self.session.id if self.session else None,
            device_id=self._device_id,
        )

    async def search(self, system_name: str, error_code: str) -> SearchRecordingResult:
        return await self._recorder.record_search(
            system_name,
            error_code,
            user_id=self.user_id,
            session_id=self.session.id if self.session else None,
            device_id=self._device_id,
        )

    async def close(self) -> None:
        """Stop listening for auth changes and end the session."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self.session is not None and self.session.id is not None:
            await self._sessions.close_session(self.session.id)
            self.session = None
