"""SQLAlchemy declarative base and shared mixins.

Mutable tables get `id`, `created_at`, and `updated_at` via the TimestampMixin.
Append-only tables (audit, moderation, sessions) only get `id` and `created_at`.
Soft-deletable tables add a nullable `deleted_at` via the SoftDeleteMixin.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    pass


class CreatedAtMixin:
    """Mixin adding id (UUID) and created_at to append-only models."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    """Mixin adding id (UUID), created_at, and updated_at to every mutable model.

    Uses server-side defaults so timestamps are set by PostgreSQL.
    """

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class SoftDeleteMixin:
    """Mixin adding a nullable deletion timestamp.

    A row with `deleted_at` set is terminal: it is excluded from active reads
    and is never reactivated.
    """

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
