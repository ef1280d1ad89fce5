"""Session model — one login (or refresh) of one identity.

Sessions are only ever mutated by setting `deleted_at`. A refresh rotates the
token pair by invalidating the presented session and creating a new one.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from community_platform.models.base import Base, CreatedAtMixin, SoftDeleteMixin


class Session(CreatedAtMixin, SoftDeleteMixin, Base):
    """An authenticated session owned by a guest, member, admin, or admin user."""

    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_owner", "owner_type", "owner_id"),)

    # Owner back-reference (no FK: the owner lives in one of four tables)
    owner_type: Mapped[str] = mapped_column(String(20), nullable=False, comment="IdentityType value")
    owner_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    # SHA-256 hex digest of the refresh token — the raw token is never stored
    refresh_token_digest: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    device_fingerprint: Mapped[str | None] = mapped_column(String(255))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Session id={self.id} owner={self.owner_type}:{self.owner_id} deleted={self.is_deleted}>"
