"""Member reports against posts and comments.

Members file reports; admins read and delete them through the parent post or
comment. Post reports are soft-deleted, comment reports hard-deleted (see the
guards in `soft_delete`).
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.errors import AlreadyExists
from community_platform.models.enums import ReportStatus
from community_platform.models.report import CommentReport, PostReport
from community_platform.schemas.resources import CommentReportCreate, PostReportCreate
from community_platform.services.soft_delete import SoftDeleteGuard, comment_report_guard, post_report_guard

logger = logging.getLogger(__name__)


class ReportService:
    """Stateless report operations — AsyncSession passed per call."""

    def __init__(
        self,
        post_guard: SoftDeleteGuard[PostReport] = post_report_guard,
        comment_guard: SoftDeleteGuard[CommentReport] = comment_report_guard,
    ) -> None:
        self.post_guard = post_guard
        self.comment_guard = comment_guard

    # ── Post reports ─────────────────────────────────────────────────

    async def report_post(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        member_id: uuid.UUID,
        body: PostReportCreate,
    ) -> PostReport:
        """File a report. One live report per (post, member); raises AlreadyExists."""
        result = await db.execute(
            select(PostReport.id)
            .where(
                PostReport.post_id == post_id,
                PostReport.reported_by_member_id == member_id,
                PostReport.deleted_at.is_(None),
            )
            .limit(1)
        )
        if result.scalar_one_or_none() is not None:
            raise AlreadyExists("You have already reported this post")

        now = datetime.now(UTC)
        report = PostReport(
            id=uuid.uuid4(),
            post_id=post_id,
            reported_by_member_id=member_id,
            report_type=body.report_type,
            reason=body.reason,
            status=ReportStatus.OPEN.value,
            created_at=now,
            updated_at=now,
            deleted_at=None,
        )
        await self.post_guard.create(db, report)

        logger.info("Post %s reported by member %s", post_id, member_id)
        return report

    async def get_post_report(self, db: AsyncSession, post_id: uuid.UUID, report_id: uuid.UUID) -> PostReport:
        return await self.post_guard.read_child(db, report_id, "post_id", post_id)

    async def delete_post_report(self, db: AsyncSession, post_id: uuid.UUID, report_id: uuid.UUID) -> None:
        """Soft-delete a post report addressed through its post."""
        await self.get_post_report(db, post_id, report_id)
        await self.post_guard.delete(db, report_id)

    # ── Comment reports ──────────────────────────────────────────────

    async def report_comment(
        self,
        db: AsyncSession,
        comment_id: uuid.UUID,
        reporter_id: uuid.UUID,
        body: CommentReportCreate,
    ) -> CommentReport:
        """File a report. One per (comment, reporter); raises AlreadyExists."""
        result = await db.execute(
            select(CommentReport.id)
            .where(CommentReport.comment_id == comment_id, CommentReport.reporter_id == reporter_id)
            .limit(1)
        )
        if result.scalar_one_or_none() is not None:
            raise AlreadyExists("You have already reported this comment")

        now = datetime.now(UTC)
        report = CommentReport(
            id=uuid.uuid4(),
            comment_id=comment_id,
            reporter_id=reporter_id,
            report_reason=body.report_reason,
            status=ReportStatus.OPEN.value,
            created_at=now,
            updated_at=now,
        )
        await self.comment_guard.create(db, report)

        logger.info("Comment %s reported by member %s", comment_id, reporter_id)
        return report

    async def get_comment_report(
        self,
        db: AsyncSession,
        comment_id: uuid.UUID,
        report_id: uuid.UUID,
    ) -> CommentReport:
        return await self.comment_guard.read_child(db, report_id, "comment_id", comment_id)

    async def delete_comment_report(self, db: AsyncSession, comment_id: uuid.UUID, report_id: uuid.UUID) -> None:
        """Hard-delete a comment report addressed through its comment."""
        await self.get_comment_report(db, comment_id, report_id)
        await self.comment_guard.delete(db, report_id)


# Module-level singleton
report_service = ReportService()
