"""RoleRecord model: per-user role and ban flag managed by administrators."""

from __future__ import annotations

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from hvacdiag.models.base import Base, RecordMixin
from hvacdiag.models.enums import UserRole


class RoleRecord(RecordMixin, Base):
    """Role assignment for one user."""

    __tablename__ = "roles"

    user_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    role: Mapped[str] = mapped_column(String(20), default=UserRole.USER.value, nullable=False)
    banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))

    def __repr__(self) -> str:
        return f"<RoleRecord user={self.user_id} role={self.role} banned={self.banned}>"
