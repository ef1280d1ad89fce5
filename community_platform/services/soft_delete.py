"""Shared deletion and read policy for resource families.

Every deletable resource declares a guard with an explicit DeletionPolicy:

- SOFT: delete sets `deleted_at` through a compare-and-set update
  (`WHERE deleted_at IS NULL`). A second delete finds nothing to change and
  fails with NotFound, so the first timestamp is never overwritten. Active
  reads filter `deleted_at IS NULL`; a soft-deleted row looks exactly like a
  missing one.
- HARD: delete removes the row; a repeat also fails with NotFound.

Creation-time uniqueness is checked before insert for a friendly error; the
storage-level unique index is the real guarantee and its IntegrityError is
translated into the same AlreadyExists.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.errors import AlreadyExists, Mismatch, NotFound
from community_platform.models.base import Base
from community_platform.models.category import Category
from community_platform.models.enums import DeletionPolicy
from community_platform.models.report import CommentReport, PostReport
from community_platform.models.session import Session

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


def clamp_paging(page: int | None, limit: int | None) -> tuple[int, int]:
    """Normalize paging: page defaults to 1, limit to 20 and is capped at 100."""
    page = page if page is not None and page > 0 else 1
    limit = limit if limit is not None and 0 < limit <= MAX_PAGE_LIMIT else DEFAULT_PAGE_LIMIT
    return page, limit


class SoftDeleteGuard(Generic[ModelT]):
    """Read/delete/uniqueness policy for one resource family."""

    def __init__(
        self,
        model: type[ModelT],
        label: str,
        policy: DeletionPolicy = DeletionPolicy.SOFT,
        unique_fields: tuple[str, ...] = (),
        unique_includes_deleted: bool = False,
    ) -> None:
        if policy is DeletionPolicy.SOFT and not hasattr(model, "deleted_at"):
            msg = f"{model.__name__} has no deleted_at column; declare DeletionPolicy.HARD"
            raise ValueError(msg)
        self.model = model
        self.label = label
        self.policy = policy
        self.unique_fields = unique_fields
        self.unique_includes_deleted = unique_includes_deleted

    @property
    def soft(self) -> bool:
        return self.policy is DeletionPolicy.SOFT

    def _live(self) -> list[ColumnElement[bool]]:
        if self.soft:
            return [self.model.deleted_at.is_(None)]
        return []

    # ── Reads ────────────────────────────────────────────────────────

    async def read_active(self, db: AsyncSession, resource_id: uuid.UUID) -> ModelT:
        """Fetch a live row; deleted and missing rows both raise NotFound."""
        result = await db.execute(
            select(self.model).where(self.model.id == resource_id, *self._live())
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFound(f"{self.label} not found")
        return row

    async def read_any(self, db: AsyncSession, resource_id: uuid.UUID) -> ModelT:
        """Privileged read that also returns soft-deleted rows (admin audit only)."""
        row = await db.get(self.model, resource_id)
        if row is None:
            raise NotFound(f"{self.label} not found")
        return row

    async def read_child(
        self,
        db: AsyncSession,
        resource_id: uuid.UUID,
        parent_field: str,
        parent_id: uuid.UUID,
    ) -> ModelT:
        """Fetch a live row addressed through its parent.

        Raises Mismatch when the row exists but hangs off another parent.
        """
        row = await self.read_active(db, resource_id)
        if getattr(row, parent_field) != parent_id:
            raise Mismatch(f"{self.label} does not belong to the specified parent")
        return row

    async def list_active(
        self,
        db: AsyncSession,
        page: int | None = None,
        limit: int | None = None,
        criteria: tuple[ColumnElement[bool], ...] = (),
    ) -> tuple[list[ModelT], int]:
        """Paginated live rows, newest first."""
        page, limit = clamp_paging(page, limit)
        filters = [*self._live(), *criteria]

        result = await db.execute(select(func.count(self.model.id)).where(*filters))
        total = result.scalar() or 0

        result = await db.execute(
            select(self.model)
            .where(*filters)
            .order_by(self.model.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ── Writes ───────────────────────────────────────────────────────

    async def ensure_unique(
        self,
        db: AsyncSession,
        values: dict[str, Any],
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        """Look for a row colliding on any unique field. Raises AlreadyExists."""
        clauses = [
            getattr(self.model, field) == values[field]
            for field in self.unique_fields
            if values.get(field) is not None
        ]
        if not clauses:
            return

        query = select(self.model.id).where(or_(*clauses))
        if not self.unique_includes_deleted:
            query = query.where(*self._live())
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)

        result = await db.execute(query.limit(1))
        if result.scalar_one_or_none() is not None:
            fields = " or ".join(self.unique_fields)
            raise AlreadyExists(f"{self.label} {fields} already exists")

    async def create(self, db: AsyncSession, instance: ModelT) -> ModelT:
        """Insert after a uniqueness check; a unique-index violation maps to AlreadyExists."""
        values = {field: getattr(instance, field) for field in self.unique_fields}
        await self.ensure_unique(db, values)
        try:
            async with db.begin_nested():
                db.add(instance)
        except IntegrityError as exc:
            logger.info("Unique constraint hit creating %s", self.label)
            raise AlreadyExists(f"{self.label} already exists") from exc
        return instance

    async def delete(self, db: AsyncSession, resource_id: uuid.UUID) -> None:
        """Delete per policy. Missing or already-deleted rows raise NotFound."""
        if self.soft:
            result = await db.execute(
                update(self.model)
                .where(self.model.id == resource_id, self.model.deleted_at.is_(None))
                .values(deleted_at=datetime.now(UTC))
            )
        else:
            result = await db.execute(delete(self.model).where(self.model.id == resource_id))

        if result.rowcount == 0:
            raise NotFound(f"{self.label} not found or already deleted")

        logger.info("%s %s deleted (%s)", self.label, resource_id, self.policy.value)


# ── Guards per resource family ───────────────────────────────────────

category_guard: SoftDeleteGuard[Category] = SoftDeleteGuard(
    Category, "Category", DeletionPolicy.SOFT, unique_fields=("code", "name")
)
post_report_guard: SoftDeleteGuard[PostReport] = SoftDeleteGuard(PostReport, "Post report", DeletionPolicy.SOFT)
comment_report_guard: SoftDeleteGuard[CommentReport] = SoftDeleteGuard(
    CommentReport, "Comment report", DeletionPolicy.HARD
)
session_guard: SoftDeleteGuard[Session] = SoftDeleteGuard(Session, "Session", DeletionPolicy.SOFT)
