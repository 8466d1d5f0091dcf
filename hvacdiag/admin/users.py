"""User administration: ban, unban, roles, password reset, user creation.

Every operation here is operator-initiated, so failures are raised as
AdminOperationError rather than swallowed. The ban is the exception: it
spans two mutations and reports which of them failed in a BanResult.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hvacdiag.admin.events import emit
from hvacdiag.analytics.user_stats import get_user_stats
from hvacdiag.config import settings
from hvacdiag.errors import AdminOperationError
from hvacdiag.integrations.backend.client import (
    BackendAuthClient,
    BackendError,
    FunctionsClient,
    auth_client,
    functions_client,
)
from hvacdiag.models.enums import UserRole
from hvacdiag.models.role import RoleRecord
from hvacdiag.schemas.events import EventType, SystemEvent
from hvacdiag.schemas.records import RoleInfo
from hvacdiag.schemas.results import BanPhase, BanResult, CreateUserResult
from hvacdiag.tracking.sessions import SessionManager, session_manager

logger = logging.getLogger(__name__)


class UserNotFoundError(AdminOperationError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class UserAdministrator:
    """Operator actions against the `roles` table and the auth backend."""

    def __init__(
        self,
        sessions: SessionManager = session_manager,
        auth: BackendAuthClient = auth_client,
        functions: FunctionsClient = functions_client,
    ) -> None:
        self._sessions = sessions
        self._auth = auth
        self._functions = functions

    # ── Ban / unban ──────────────────────────────────────────────────

    async def ban_user(self, db: AsyncSession, user_id: str, actor_id: str | None = None) -> BanResult:
        """Set the ban flag, then close every active session of the user.

        Each phase commits on its own. If closing sessions fails, the flag
        stays set and the result names BanPhase.SESSIONS.
        """
        result = BanResult(user_id=user_id)

        # 1. Role flag
        try:
            updated = await db.execute(
                update(RoleRecord).where(RoleRecord.user_id == user_id).values(banned=True)
            )
            if not updated.rowcount:  # type: ignore[attr-defined]
                await db.rollback()
                result.failed_phase = BanPhase.ROLE
                result.not_found = True
                result.error = "User not found"
                return result
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.exception("Ban failed in role phase: user=%s", user_id)
            result.failed_phase = BanPhase.ROLE
            result.error = f"Failed to ban user: {exc}"
            return result

        result.banned = True
        result.completed_phases.append(BanPhase.ROLE)

        # 2. Active sessions
        try:
            result.sessions_closed = await self._sessions.end_all_active_sessions_for_user(db, user_id)
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.exception("Ban failed in sessions phase (flag kept): user=%s", user_id)
            result.failed_phase = BanPhase.SESSIONS
            result.error = f"User banned but active sessions were not closed: {exc}"
            await emit(SystemEvent(
                event_type=EventType.USER_BAN_PARTIAL,
                user_id=user_id,
                actor_id=actor_id,
                actor_role="admin",
                data={"failed_phase": BanPhase.SESSIONS.value, "error": str(exc)},
                source_module="admin.users",
            ))
            return result

        result.completed_phases.append(BanPhase.SESSIONS)
        result.success = True

        await emit(SystemEvent(
            event_type=EventType.USER_BANNED,
            user_id=user_id,
            actor_id=actor_id,
            actor_role="admin",
            data={"sessions_closed": result.sessions_closed},
            source_module="admin.users",
        ))
        logger.info("User banned: %s (%d sessions closed)", user_id, result.sessions_closed)
        return result

    async def unban_user(self, db: AsyncSession, user_id: str, actor_id: str | None = None) -> None:
        """Clear the ban flag. Closed sessions stay closed."""
        await self._update_role_record(db, user_id, {"banned": False}, "Failed to unban user")
        await emit(SystemEvent(
            event_type=EventType.USER_UNBANNED,
            user_id=user_id,
            actor_id=actor_id,
            actor_role="admin",
            source_module="admin.users",
        ))
        logger.info("User unbanned: %s", user_id)

    # ── Roles ────────────────────────────────────────────────────────

    async def change_user_role(
        self,
        db: AsyncSession,
        user_id: str,
        role: UserRole | str,
        actor_id: str | None = None,
    ) -> None:
        try:
            new_role = UserRole(role)
        except ValueError as exc:
            raise AdminOperationError(f"Invalid role: {role}") from exc

        await self._update_role_record(db, user_id, {"role": new_role.value}, "Failed to update user role")
        await emit(SystemEvent(
            event_type=EventType.USER_ROLE_CHANGED,
            user_id=user_id,
            actor_id=actor_id,
            actor_role="admin",
            data={"role": new_role.value},
            source_module="admin.users",
        ))
        logger.info("User role changed: %s -> %s", user_id, new_role.value)

    async def _update_role_record(
        self, db: AsyncSession, user_id: str, values: dict[str, Any], failure_message: str
    ) -> None:
        try:
            updated = await db.execute(
                update(RoleRecord).where(RoleRecord.user_id == user_id).values(**values)
            )
            if not updated.rowcount:  # type: ignore[attr-defined]
                await db.rollback()
                raise UserNotFoundError(user_id)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("%s: user=%s", failure_message, user_id)
            raise AdminOperationError(failure_message) from exc

    # ── Auth backend ─────────────────────────────────────────────────

    async def reset_user_password(self, email: str, actor_id: str | None = None) -> None:
        """Send a password reset email through the auth backend."""
        try:
            await self._auth.reset_password_for_email(
                email, redirect_to=settings.backend.password_reset_redirect
            )
        except BackendError as exc:
            logger.error("Error resetting password for %s: %s", email, exc)
            raise AdminOperationError("Failed to send password reset email") from exc

        await emit(SystemEvent(
            event_type=EventType.PASSWORD_RESET_SENT,
            actor_id=actor_id,
            actor_role="admin",
            data={"email": email},
            source_module="admin.users",
        ))

    async def create_user(
        self,
        email: str,
        password: str,
        full_name: str,
        role: UserRole | str = UserRole.USER,
        actor_id: str | None = None,
    ) -> CreateUserResult:
        """Create an account (auth user plus role row) via `create-user`."""
        try:
            role_value = UserRole(role).value
        except ValueError:
            return CreateUserResult(success=False, error=f"Invalid role: {role}")

        try:
            response = await self._functions.invoke("create-user", {
                "email": email,
                "password": password,
                "full_name": full_name,
                "role": role_value,
            })
        except Exception as exc:
            logger.exception("Error creating user %s", email)
            return CreateUserResult(success=False, error=str(exc) or "An error occurred")

        if response.error is not None:
            return CreateUserResult(
                success=False,
                error=response.error.message or "Failed to create user",
            )

        data = response.data if isinstance(response.data, dict) else {}
        user = data.get("user")

        await emit(SystemEvent(
            event_type=EventType.USER_CREATED,
            user_id=(user or {}).get("id"),
            actor_id=actor_id,
            actor_role="admin",
            data={"email": email, "role": role_value},
            source_module="admin.users",
        ))
        return CreateUserResult(success=True, user=user)

    # ── Queries ──────────────────────────────────────────────────────

    async def list_users(self, db: AsyncSession) -> list[RoleInfo]:
        """All role rows, newest first."""
        try:
            result = await db.execute(select(RoleRecord).order_by(RoleRecord.created_at.desc()))
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch users")
            raise AdminOperationError("Failed to fetch users") from exc
        return [RoleInfo.model_validate(row) for row in result.scalars().all()]

    async def get_user_with_stats(self, db: AsyncSession, user_id: str) -> dict[str, Any]:
        """Role row plus UserStats; `stats` is None when unavailable."""
        try:
            result = await db.execute(select(RoleRecord).where(RoleRecord.user_id == user_id))
            row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch user %s", user_id)
            raise AdminOperationError("Failed to fetch user") from exc
        if row is None:
            raise UserNotFoundError(user_id)

        info = RoleInfo.model_validate(row)
        stats = await get_user_stats(db, user_id)
        return {
            **info.model_dump(mode="json"),
            "stats": stats.model_dump(mode="json", by_alias=True) if stats else None,
        }


# Module-level singleton
user_administrator = UserAdministrator()
