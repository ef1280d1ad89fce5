"""Category endpoints — admins curate, members browse live categories."""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.auth.authorizer import authorize_as_admin, authorize_as_member
from community_platform.db.engine import get_session
from community_platform.errors import AlreadyExists, NotFound
from community_platform.models.enums import AuditEventType, AuditResult
from community_platform.schemas.identity import AdminPayload, MemberPayload
from community_platform.schemas.resources import CategoryCreate, CategoryRead, CategoryUpdate, Page, Pagination
from community_platform.services.audit import audit_entry, audit_trail
from community_platform.services.categories import category_service
from community_platform.services.soft_delete import clamp_paging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communityPlatform", tags=["categories"])


# ── Admin ────────────────────────────────────────────────────────────


@router.post("/admin/categories", status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreate,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> CategoryRead:
    try:
        category = await category_service.create(db, body)
    except AlreadyExists:
        await audit_trail.append_detached(
            audit_entry(
                admin,
                AuditEventType.CATEGORY_CREATED,
                "category",
                body.code,
                AuditResult.FAILURE,
                metadata={"reason": "already_exists"},
            )
        )
        raise

    await audit_trail.append(
        db,
        audit_entry(admin, AuditEventType.CATEGORY_CREATED, "category", category.id, metadata={"code": category.code}),
    )
    return CategoryRead.model_validate(category)


@router.put("/admin/categories/{category_id}")
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> CategoryRead:
    category = await category_service.update(db, category_id, body)
    await audit_trail.append(
        db,
        audit_entry(
            admin,
            AuditEventType.CATEGORY_UPDATED,
            "category",
            category.id,
            metadata=body.model_dump(exclude_unset=True),
        ),
    )
    return CategoryRead.model_validate(category)


@router.get("/admin/categories/{category_id}")
async def get_category_as_admin(
    category_id: uuid.UUID,
    include_deleted: bool = Query(False),
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> CategoryRead:
    """Admin read; `include_deleted=true` also returns soft-deleted categories."""
    category = await category_service.get(db, category_id, include_deleted=include_deleted)
    return CategoryRead.model_validate(category)


@router.delete("/admin/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> Response:
    try:
        await category_service.delete(db, category_id)
    except NotFound:
        await audit_trail.append_detached(
            audit_entry(admin, AuditEventType.CATEGORY_DELETED, "category", category_id, AuditResult.FAILURE)
        )
        raise

    await audit_trail.append(db, audit_entry(admin, AuditEventType.CATEGORY_DELETED, "category", category_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Member ───────────────────────────────────────────────────────────


@router.get("/member/categories")
async def list_categories(
    page: int | None = Query(None),
    limit: int | None = Query(None),
    db: AsyncSession = Depends(get_session),
    member: MemberPayload = Depends(authorize_as_member),
) -> Page[CategoryRead]:
    page, limit = clamp_paging(page, limit)
    rows, total = await category_service.list_active(db, page, limit)
    return Page[CategoryRead](
        pagination=Pagination.build(page, limit, total),
        data=[CategoryRead.model_validate(row) for row in rows],
    )


@router.get("/member/categories/{category_id}")
async def get_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    member: MemberPayload = Depends(authorize_as_member),
) -> CategoryRead:
    category = await category_service.get(db, category_id)
    return CategoryRead.model_validate(category)
