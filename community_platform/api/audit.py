"""Audit and moderation log endpoints — append and read, no edits.

Admins and admin users both read and search the trail. Recording a
moderation action is an admin operation.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.auth.authorizer import authorize_as_admin, authorize_as_admin_user
from community_platform.db.engine import get_session
from community_platform.models.enums import AuditEventType
from community_platform.schemas.identity import AdminPayload, AdminUserPayload
from community_platform.schemas.resources import (
    AuditLogRead,
    AuditLogSearch,
    ModerationLogCreate,
    ModerationLogRead,
    ModerationLogSearch,
    Page,
    Pagination,
)
from community_platform.services.audit import audit_entry, audit_trail

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communityPlatform", tags=["audit"])


# ── Shared reads ─────────────────────────────────────────────────────


async def _read_audit_log(db: AsyncSession, log_id: uuid.UUID) -> AuditLogRead:
    record = await audit_trail.get(db, log_id)
    return AuditLogRead.model_validate(record)


async def _search_audit_logs(db: AsyncSession, body: AuditLogSearch) -> Page[AuditLogRead]:
    rows, total, page, limit = await audit_trail.search(db, body)
    return Page[AuditLogRead](
        pagination=Pagination.build(page, limit, total),
        data=[AuditLogRead.model_validate(row) for row in rows],
    )


async def _read_moderation_log(db: AsyncSession, post_id: uuid.UUID, log_id: uuid.UUID) -> ModerationLogRead:
    record = await audit_trail.get_moderation_log(db, post_id, log_id)
    return ModerationLogRead.model_validate(record)


async def _search_moderation_logs(
    db: AsyncSession,
    post_id: uuid.UUID,
    body: ModerationLogSearch,
) -> Page[ModerationLogRead]:
    rows, total, page, limit = await audit_trail.search_moderation_logs(db, post_id, body.page, body.limit)
    return Page[ModerationLogRead](
        pagination=Pagination.build(page, limit, total),
        data=[ModerationLogRead.model_validate(row) for row in rows],
    )


# ── Admin ────────────────────────────────────────────────────────────


@router.get("/admin/auditLogs/{log_id}")
async def get_audit_log(
    log_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> AuditLogRead:
    return await _read_audit_log(db, log_id)


@router.patch("/admin/auditLogs")
async def search_audit_logs(
    body: AuditLogSearch,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> Page[AuditLogRead]:
    """Filtered, paginated audit search (PATCH carries the filter body)."""
    return await _search_audit_logs(db, body)


@router.post("/admin/posts/{post_id}/moderationLogs", status_code=status.HTTP_201_CREATED)
async def create_moderation_log(
    post_id: uuid.UUID,
    body: ModerationLogCreate,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> ModerationLogRead:
    record = await audit_trail.record_moderation(db, post_id, admin.id, body.action, body.reason)
    await audit_trail.append(
        db,
        audit_entry(
            admin,
            AuditEventType.MODERATION_RECORDED,
            "moderation_log",
            record.id,
            metadata={"post_id": str(post_id), "action": body.action},
        ),
    )
    return ModerationLogRead.model_validate(record)


@router.patch("/admin/posts/{post_id}/moderationLogs")
async def search_moderation_logs(
    post_id: uuid.UUID,
    body: ModerationLogSearch,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> Page[ModerationLogRead]:
    return await _search_moderation_logs(db, post_id, body)


@router.get("/admin/posts/{post_id}/moderationLogs/{log_id}")
async def get_moderation_log(
    post_id: uuid.UUID,
    log_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> ModerationLogRead:
    """Fetch a moderation log; 400 if it belongs to another post."""
    return await _read_moderation_log(db, post_id, log_id)


# ── Admin user ───────────────────────────────────────────────────────


@router.get("/adminUser/auditLogs/{log_id}")
async def get_audit_log_as_admin_user(
    log_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin_user: AdminUserPayload = Depends(authorize_as_admin_user),
) -> AuditLogRead:
    return await _read_audit_log(db, log_id)


@router.patch("/adminUser/auditLogs")
async def search_audit_logs_as_admin_user(
    body: AuditLogSearch,
    db: AsyncSession = Depends(get_session),
    admin_user: AdminUserPayload = Depends(authorize_as_admin_user),
) -> Page[AuditLogRead]:
    return await _search_audit_logs(db, body)


@router.patch("/adminUser/posts/{post_id}/moderationLogs")
async def search_moderation_logs_as_admin_user(
    post_id: uuid.UUID,
    body: ModerationLogSearch,
    db: AsyncSession = Depends(get_session),
    admin_user: AdminUserPayload = Depends(authorize_as_admin_user),
) -> Page[ModerationLogRead]:
    return await _search_moderation_logs(db, post_id, body)


@router.get("/adminUser/posts/{post_id}/moderationLogs/{log_id}")
async def get_moderation_log_as_admin_user(
    post_id: uuid.UUID,
    log_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin_user: AdminUserPayload = Depends(authorize_as_admin_user),
) -> ModerationLogRead:
    return await _read_moderation_log(db, post_id, log_id)
