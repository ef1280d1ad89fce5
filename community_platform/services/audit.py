"""Audit trail writer — append-only audit and moderation logs.

Entries are immutable: this module exposes no update or delete path. Reads
are admin-only (enforced by the routers). Compound-key reads cross-check the
parent so a log id cannot be fetched through an unrelated post.

`append` writes inside the caller's transaction. `append_detached` writes in
its own session so that failure outcomes survive the request's rollback; it
logs and swallows its own errors — audit logging must never crash the main
application flow.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.db.engine import detached_session
from community_platform.errors import Mismatch, NotFound
from community_platform.models.audit import AuditLog, ModerationLog
from community_platform.models.enums import AuditEventType, AuditResult, IdentityType
from community_platform.schemas.identity import IdentityPayload
from community_platform.schemas.resources import AuditLogCreate, AuditLogSearch
from community_platform.services.soft_delete import clamp_paging

logger = logging.getLogger(__name__)


def actor_columns(actor: IdentityPayload | None) -> dict[str, uuid.UUID | None]:
    """Map an identity onto the audit entry's actor columns."""
    if actor is None:
        return {"admin_id": None, "member_id": None}
    role = IdentityType(actor.type)
    if role.is_privileged:
        return {"admin_id": actor.id, "member_id": None}
    if role is IdentityType.MEMBER:
        return {"admin_id": None, "member_id": actor.id}
    return {"admin_id": None, "member_id": None}


def audit_entry(
    actor: IdentityPayload | None,
    event_type: AuditEventType,
    entity_type: str,
    entity_id: uuid.UUID | str,
    result: AuditResult = AuditResult.SUCCESS,
    metadata: dict[str, Any] | None = None,
) -> AuditLogCreate:
    """Shorthand for an entry attributed to `actor`."""
    return AuditLogCreate(
        **actor_columns(actor),
        event_type=event_type.value,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        result=result,
    )


def _build_entry(entry: AuditLogCreate) -> AuditLog:
    return AuditLog(
        id=uuid.uuid4(),
        admin_id=entry.admin_id,
        member_id=entry.member_id,
        event_type=entry.event_type,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        metadata_json=entry.metadata_json,
        result=entry.result.value,
        created_at=datetime.now(UTC),
    )


class AuditTrailWriter:
    """Stateless audit operations — AsyncSession passed per call."""

    async def append(self, db: AsyncSession, entry: AuditLogCreate) -> AuditLog:
        """Persist an immutable audit entry in the caller's transaction."""
        record = _build_entry(entry)
        db.add(record)
        await db.flush()

        logger.info(
            "Audit: %s %s:%s -> %s",
            entry.event_type,
            entry.entity_type,
            entry.entity_id,
            entry.result.value,
        )
        return record

    async def append_detached(self, entry: AuditLogCreate) -> AuditLog | None:
        """Persist an audit entry in its own transaction. Never raises."""
        try:
            async with detached_session() as db:
                record = _build_entry(entry)
                db.add(record)
                await db.flush()
            return record
        except Exception:
            logger.exception(
                "Failed to persist audit entry: %s (%s:%s)",
                entry.event_type,
                entry.entity_type,
                entry.entity_id,
            )
            return None

    async def get(self, db: AsyncSession, log_id: uuid.UUID) -> AuditLog:
        """Fetch an audit entry. Raises NotFound."""
        record = await db.get(AuditLog, log_id)
        if record is None:
            raise NotFound("Audit log not found")
        return record

    async def search(self, db: AsyncSession, query: AuditLogSearch) -> tuple[list[AuditLog], int, int, int]:
        """Filtered audit entries, newest first.

        Returns (rows, total, page, limit) with paging normalized.
        """
        page, limit = clamp_paging(query.page, query.limit)

        filters = []
        if query.event_type is not None:
            filters.append(AuditLog.event_type == query.event_type)
        if query.entity_type is not None:
            filters.append(AuditLog.entity_type == query.entity_type)
        if query.entity_id is not None:
            filters.append(AuditLog.entity_id == query.entity_id)
        if query.result is not None:
            filters.append(AuditLog.result == query.result.value)
        if query.created_at_from is not None:
            filters.append(AuditLog.created_at >= query.created_at_from)
        if query.created_at_to is not None:
            filters.append(AuditLog.created_at <= query.created_at_to)

        result = await db.execute(select(func.count(AuditLog.id)).where(*filters))
        total = result.scalar() or 0

        result = await db.execute(
            select(AuditLog)
            .where(*filters)
            .order_by(AuditLog.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total, page, limit

    # ── Moderation logs ──────────────────────────────────────────────

    async def record_moderation(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        admin_id: uuid.UUID,
        action: str,
        reason: str | None = None,
    ) -> ModerationLog:
        """Append an immutable moderation log under a post."""
        record = ModerationLog(
            id=uuid.uuid4(),
            post_id=post_id,
            admin_id=admin_id,
            action=action,
            reason=reason,
            created_at=datetime.now(UTC),
        )
        db.add(record)
        await db.flush()

        logger.info("Moderation: %s on post %s by admin %s", action, post_id, admin_id)
        return record

    async def get_moderation_log(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        log_id: uuid.UUID,
    ) -> ModerationLog:
        """Fetch a moderation log through its post.

        Raises:
            NotFound: no log with this id.
            Mismatch: the log exists but belongs to another post.
        """
        record = await db.get(ModerationLog, log_id)
        if record is None:
            raise NotFound("Moderation log not found")
        if record.post_id != post_id:
            logger.warning("Moderation log %s requested via foreign post %s", log_id, post_id)
            raise Mismatch("Moderation log does not belong to the specified post")
        return record

    async def search_moderation_logs(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[ModerationLog], int, int, int]:
        """Moderation logs of one post, newest first."""
        page, limit = clamp_paging(page, limit)

        result = await db.execute(select(func.count(ModerationLog.id)).where(ModerationLog.post_id == post_id))
        total = result.scalar() or 0

        result = await db.execute(
            select(ModerationLog)
            .where(ModerationLog.post_id == post_id)
            .order_by(ModerationLog.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total, page, limit


# Module-level singleton
audit_trail = AuditTrailWriter()
