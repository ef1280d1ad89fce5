"""AuditLog and ModerationLog models — immutable trails of privileged actions.

Both tables are append-only: no update or delete path exists for them.
References to actors and entities are plain ids (non-owning), so an entry
outlives the entity it describes.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from community_platform.models.base import Base, CreatedAtMixin


class AuditLog(CreatedAtMixin, Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_logs"

    # Actor (both nullable — system-originated events have neither)
    admin_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)
    member_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)

    # Event classification
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, comment="Table/model name")
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Flexible payload
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSON().with_variant(JSONB(), "postgresql"))

    result: Mapped[str] = mapped_column(String(20), nullable=False, comment="success or failure")

    def __repr__(self) -> str:
        return f"<AuditLog event={self.event_type} entity={self.entity_type}:{self.entity_id} result={self.result}>"


class ModerationLog(CreatedAtMixin, Base):
    """Immutable record of a moderation action taken on a post."""

    __tablename__ = "moderation_logs"

    post_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    admin_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[str | None] = mapped_column(String(1000))

    def __repr__(self) -> str:
        return f"<ModerationLog post={self.post_id} action={self.action}>"
