"""Report models — member reports against posts and comments.

Post reports are soft-deleted; comment reports carry no `deleted_at` and are
hard-deleted. The policy is declared on the guard for each family.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from community_platform.models.base import Base, SoftDeleteMixin, TimestampMixin
from community_platform.models.enums import ReportStatus


class PostReport(TimestampMixin, SoftDeleteMixin, Base):
    """A member's report against a post. One live report per (post, member)."""

    __tablename__ = "post_reports"
    __table_args__ = (
        Index(
            "uq_post_reports_post_member_live",
            "post_id",
            "reported_by_member_id",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    post_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    reported_by_member_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    admin_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    report_type: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[str] = mapped_column(String(1000), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=ReportStatus.OPEN.value, nullable=False)
    resolution_notes: Mapped[str | None] = mapped_column(String(1000))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<PostReport post={self.post_id} status={self.status}>"


class CommentReport(TimestampMixin, Base):
    """A report against a comment. Hard-deleted; one per (comment, reporter)."""

    __tablename__ = "comment_reports"
    __table_args__ = (UniqueConstraint("comment_id", "reporter_id", name="uq_comment_reports_comment_reporter"),)

    comment_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    reporter_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    admin_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))

    report_reason: Mapped[str] = mapped_column(String(1000), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=ReportStatus.OPEN.value, nullable=False)
    resolution: Mapped[str | None] = mapped_column(String(1000))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<CommentReport comment={self.comment_id} status={self.status}>"
