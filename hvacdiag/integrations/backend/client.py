"""Async httpx clients for the hosted backend: auth and remote functions.

Auth:
    GET  {base_url}/auth/v1/user     (apikey + Bearer <access token>)
    POST {base_url}/auth/v1/recover  (apikey)
Functions:
    POST {base_url}/functions/v1/{name}  (apikey + Bearer <service key>)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

import httpx

from hvacdiag.config import settings
from hvacdiag.integrations.backend.schemas import AuthUser, FunctionError, FunctionResult

logger = logging.getLogger(__name__)

AuthListener = Callable[[str, AuthUser | None], Any]

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"


class BackendError(Exception):
    """The backend rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthSubscription:
    """Handle returned by `on_auth_state_change`."""

    def __init__(self, client: BackendAuthClient, listener: AuthListener) -> None:
        self._client = client
        self._listener = listener

    def unsubscribe(self) -> None:
        self._client._remove_listener(self._listener)


class BackendAuthClient:
    """Thin wrapper over the backend's auth endpoints.

    Holds the current access token and notifies listeners when the signed-in
    user changes.
    """

    def __init__(self, base_url: str | None = None, api_key: str | None = None) -> None:
        self._base_url = (base_url if base_url is not None else settings.backend.backend_url).rstrip("/")
        self._api_key = api_key if api_key is not None else settings.backend.backend_anon_key
        self._timeout = httpx.Timeout(settings.backend.backend_timeout, connect=5.0)
        self._access_token: str | None = None
        self._listeners: list[AuthListener] = []

    @property
    def configured(self) -> bool:
        return bool(self._base_url)

    def _headers(self, bearer: str | None = None) -> dict[str, str]:
        headers = {"apikey": self._api_key}
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def get_current_user(self, access_token: str | None = None) -> AuthUser | None:
        """Resolve the user behind `access_token` (or the stored one).

        Returns None when signed out, unconfigured or the token is rejected.
        """
        token = access_token or self._access_token
        if not token or not self.configured:
            return None

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(
                    f"{self._base_url}/auth/v1/user",
                    headers=self._headers(token),
                )
                response.raise_for_status()
                payload: dict = response.json()
        except httpx.HTTPStatusError as exc:
            logger.debug("Auth user lookup rejected: HTTP %s", exc.response.status_code)
            return None
        except httpx.HTTPError as exc:
            logger.warning("Auth user lookup failed: %s", exc)
            return None

        return AuthUser.model_validate(payload)

    async def reset_password_for_email(self, email: str, redirect_to: str | None = None) -> None:
        """Ask the backend to send a password reset email.

        Raises:
            BackendError: when the backend is unreachable or answers non-2xx.
        """
        if not self.configured:
            raise BackendError("Auth backend not configured")

        params = {"redirect_to": redirect_to} if redirect_to else None
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/auth/v1/recover",
                    headers=self._headers(),
                    params=params,
                    json={"email": email},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendError(
                f"Password reset rejected: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Password reset request failed: {exc}") from exc

    # ── Auth state ───────────────────────────────────────────────────

    def on_auth_state_change(self, listener: AuthListener) -> AuthSubscription:
        """Register `listener(event, user)`; call `unsubscribe()` to stop."""
        self._listeners.append(listener)
        return AuthSubscription(self, listener)

    def _remove_listener(self, listener: AuthListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def set_access_token(self, access_token: str) -> AuthUser | None:
        """Store a new token, resolve its user and notify listeners."""
        self._access_token = access_token
        user = await self.get_current_user(access_token)
        await self._notify(SIGNED_IN if user else SIGNED_OUT, user)
        return user

    async def clear_session(self) -> None:
        self._access_token = None
        await self._notify(SIGNED_OUT, None)

    async def _notify(self, event: str, user: AuthUser | None) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(event, user)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Auth state listener failed for %s", event)


class FunctionsClient:
    """Invokes named remote functions with the service key."""

    def __init__(self, base_url: str | None = None, service_key: str | None = None) -> None:
        self._base_url = (base_url if base_url is not None else settings.backend.backend_url).rstrip("/")
        self._service_key = (
            service_key if service_key is not None else settings.backend.backend_service_key
        )
        self._timeout = httpx.Timeout(settings.backend.backend_timeout, connect=5.0)

    async def invoke(self, name: str, payload: dict[str, Any]) -> FunctionResult:
        """POST `payload` to the function; errors come back in `result.error`."""
        if not self._base_url:
            return FunctionResult(error=FunctionError(message="Functions backend not configured"))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    f"{self._base_url}/functions/v1/{name}",
                    headers={
                        "apikey": self._service_key,
                        "Authorization": f"Bearer {self._service_key}",
                    },
                    json=payload,
                )
                response.raise_for_status()
                data = response.json() if response.content else None
        except httpx.HTTPStatusError as exc:
            logger.error("Error invoking function '%s': HTTP %s", name, exc.response.status_code)
            return FunctionResult(error=FunctionError(
                message=_error_message(exc.response),
                status_code=exc.response.status_code,
            ))
        except httpx.HTTPError as exc:
            logger.error("Error invoking function '%s': %s", name, exc)
            return FunctionResult(error=FunctionError(message=str(exc)))

        return FunctionResult(data=data)


def _error_message(response: httpx.Response) -> str:
    """Pull `error` or `message` out of a JSON error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or "")
    return ""


# Module-level singletons
auth_client = BackendAuthClient()
functions_client = FunctionsClient()
