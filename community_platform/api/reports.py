"""Post and comment report endpoints.

Members file reports; admins read and delete them through the reported post
or comment. Addressing a report through the wrong parent answers 400.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.auth.authorizer import authorize_as_admin, authorize_as_member
from community_platform.db.engine import get_session
from community_platform.errors import CommunityPlatformError
from community_platform.models.enums import AuditEventType, AuditResult
from community_platform.schemas.identity import AdminPayload, MemberPayload
from community_platform.schemas.resources import (
    CommentReportCreate,
    CommentReportRead,
    PostReportCreate,
    PostReportRead,
)
from community_platform.services.audit import audit_entry, audit_trail
from community_platform.services.reports import report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communityPlatform", tags=["reports"])


# ── Member ───────────────────────────────────────────────────────────


@router.post("/member/posts/{post_id}/reports", status_code=status.HTTP_201_CREATED)
async def report_post(
    post_id: uuid.UUID,
    body: PostReportCreate,
    db: AsyncSession = Depends(get_session),
    member: MemberPayload = Depends(authorize_as_member),
) -> PostReportRead:
    report = await report_service.report_post(db, post_id, member.id, body)
    return PostReportRead.model_validate(report)


@router.post("/member/comments/{comment_id}/reports", status_code=status.HTTP_201_CREATED)
async def report_comment(
    comment_id: uuid.UUID,
    body: CommentReportCreate,
    db: AsyncSession = Depends(get_session),
    member: MemberPayload = Depends(authorize_as_member),
) -> CommentReportRead:
    report = await report_service.report_comment(db, comment_id, member.id, body)
    return CommentReportRead.model_validate(report)


# ── Admin ────────────────────────────────────────────────────────────


@router.get("/admin/posts/{post_id}/reports/{report_id}")
async def get_post_report(
    post_id: uuid.UUID,
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> PostReportRead:
    report = await report_service.get_post_report(db, post_id, report_id)
    return PostReportRead.model_validate(report)


@router.delete("/admin/posts/{post_id}/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_report(
    post_id: uuid.UUID,
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> Response:
    metadata = {"kind": "post", "post_id": str(post_id)}
    try:
        await report_service.delete_post_report(db, post_id, report_id)
    except CommunityPlatformError as exc:
        await audit_trail.append_detached(
            audit_entry(
                admin,
                AuditEventType.REPORT_DELETED,
                "post_report",
                report_id,
                AuditResult.FAILURE,
                metadata={**metadata, "error": exc.code},
            )
        )
        raise

    await audit_trail.append(
        db, audit_entry(admin, AuditEventType.REPORT_DELETED, "post_report", report_id, metadata=metadata)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/admin/comments/{comment_id}/reports/{report_id}")
async def get_comment_report(
    comment_id: uuid.UUID,
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> CommentReportRead:
    report = await report_service.get_comment_report(db, comment_id, report_id)
    return CommentReportRead.model_validate(report)


@router.delete("/admin/comments/{comment_id}/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_report(
    comment_id: uuid.UUID,
    report_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> Response:
    metadata = {"kind": "comment", "comment_id": str(comment_id)}
    try:
        await report_service.delete_comment_report(db, comment_id, report_id)
    except CommunityPlatformError as exc:
        await audit_trail.append_detached(
            audit_entry(
                admin,
                AuditEventType.REPORT_DELETED,
                "comment_report",
                report_id,
                AuditResult.FAILURE,
                metadata={**metadata, "error": exc.code},
            )
        )
        raise

    await audit_trail.append(
        db, audit_entry(admin, AuditEventType.REPORT_DELETED, "comment_report", report_id, metadata=metadata)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
