"""Category management — admin-curated, soft-deletable.

`code` and `name` are unique among live categories only: once a category is
soft-deleted its code and name may be reused.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.errors import AlreadyExists
from community_platform.models.category import Category
from community_platform.schemas.resources import CategoryCreate, CategoryUpdate
from community_platform.services.soft_delete import SoftDeleteGuard, category_guard

logger = logging.getLogger(__name__)


class CategoryService:
    """Stateless category operations — AsyncSession passed per call."""

    def __init__(self, guard: SoftDeleteGuard[Category] = category_guard) -> None:
        self.guard = guard

    async def create(self, db: AsyncSession, body: CategoryCreate) -> Category:
        """Create a category. Raises AlreadyExists on a live code/name clash."""
        now = datetime.now(UTC)
        category = Category(
            id=uuid.uuid4(),
            code=body.code,
            name=body.name,
            description=body.description,
            created_at=now,
            updated_at=now,
            deleted_at=None,
        )
        await self.guard.create(db, category)

        logger.info("Category created: %s (%s)", category.code, category.id)
        return category

    async def update(self, db: AsyncSession, category_id: uuid.UUID, body: CategoryUpdate) -> Category:
        """Rename or redescribe a live category. `code` is immutable."""
        category = await self.guard.read_active(db, category_id)
        changes = body.model_dump(exclude_unset=True)
        if not changes:
            return category

        await self.guard.ensure_unique(db, changes, exclude_id=category.id)
        try:
            async with db.begin_nested():
                for field, value in changes.items():
                    setattr(category, field, value)
                category.updated_at = datetime.now(UTC)
                await db.flush()
        except IntegrityError as exc:
            logger.info("Unique constraint hit updating category %s", category.id)
            raise AlreadyExists("Category code or name already exists") from exc

        logger.info("Category updated: %s (%s)", category.id, ", ".join(changes))
        return category

    async def get(self, db: AsyncSession, category_id: uuid.UUID, include_deleted: bool = False) -> Category:
        if include_deleted:
            return await self.guard.read_any(db, category_id)
        return await self.guard.read_active(db, category_id)

    async def list_active(
        self,
        db: AsyncSession,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[Category], int]:
        return await self.guard.list_active(db, page, limit)

    async def delete(self, db: AsyncSession, category_id: uuid.UUID) -> None:
        await self.guard.delete(db, category_id)


# Module-level singleton
category_service = CategoryService()
