"""Identity models — one table per role discriminator.

A token's `id` claim is the primary key of a row in exactly one of these
tables, selected by the token's `type`. Rows are never trusted from the token
alone: every request re-reads the row and requires it to be live.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from community_platform.models.base import Base, CreatedAtMixin, SoftDeleteMixin, TimestampMixin
from community_platform.models.enums import IdentityType


class Guest(CreatedAtMixin, SoftDeleteMixin, Base):
    """Anonymous visitor identity issued on guest join."""

    __tablename__ = "guests"

    guest_identifier: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(String(500))

    def __repr__(self) -> str:
        return f"<Guest id={self.id} deleted={self.is_deleted}>"


class AccountMixin:
    """Columns shared by password-authenticated identities."""

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Member(AccountMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Registered community member."""

    __tablename__ = "members"

    def __repr__(self) -> str:
        return f"<Member email={self.email} active={self.is_active}>"


class Admin(AccountMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Platform administrator."""

    __tablename__ = "admins"

    is_super_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Admin email={self.email} active={self.is_active}>"


class AdminUser(AccountMixin, TimestampMixin, SoftDeleteMixin, Base):
    """Privileged admin-user account (community-level administration)."""

    __tablename__ = "admin_users"

    def __repr__(self) -> str:
        return f"<AdminUser email={self.email} active={self.is_active}>"


IdentityRecord = Guest | Member | Admin | AdminUser

IDENTITY_MODELS: dict[IdentityType, type[IdentityRecord]] = {
    IdentityType.GUEST: Guest,
    IdentityType.MEMBER: Member,
    IdentityType.ADMIN: Admin,
    IdentityType.ADMIN_USER: AdminUser,
}
