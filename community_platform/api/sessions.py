"""Session listing, read, and revocation endpoints.

Members list, see, and revoke only their own sessions; admins and admin users may
list and revoke any. A second revocation, an unknown id, and a foreign session all
answer 404. Every revocation attempt is written to the audit trail.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.auth.authorizer import authorize_as_admin, authorize_as_admin_user, authorize_as_member
from community_platform.db.engine import get_session
from community_platform.errors import NotFound
from community_platform.models.enums import AuditEventType, AuditResult
from community_platform.schemas.identity import AdminPayload, AdminUserPayload, IdentityPayload, MemberPayload
from community_platform.schemas.resources import Page, Pagination, SessionRead, SessionSearch
from community_platform.services.audit import audit_entry, audit_trail
from community_platform.services.sessions import session_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/communityPlatform", tags=["sessions"])


async def _search(db: AsyncSession, requester: IdentityPayload, body: SessionSearch) -> Page[SessionRead]:
    rows, total, page, limit = await session_manager.search(db, requester, body)
    return Page[SessionRead](
        pagination=Pagination.build(page, limit, total),
        data=[SessionRead.model_validate(row) for row in rows],
    )


async def _revoke(db: AsyncSession, session_id: uuid.UUID, requester: IdentityPayload) -> Response:
    try:
        session = await session_manager.invalidate(db, session_id, requester)
    except NotFound:
        await audit_trail.append_detached(
            audit_entry(requester, AuditEventType.SESSION_REVOKED, "session", session_id, AuditResult.FAILURE)
        )
        raise

    await audit_trail.append(
        db,
        audit_entry(
            requester,
            AuditEventType.SESSION_REVOKED,
            "session",
            session.id,
            metadata={"owner_type": session.owner_type, "owner_id": str(session.owner_id)},
        ),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/member/sessions")
async def search_member_sessions(
    body: SessionSearch,
    db: AsyncSession = Depends(get_session),
    member: MemberPayload = Depends(authorize_as_member),
) -> Page[SessionRead]:
    """List the member's own live sessions (owner filters in the body are ignored)."""
    return await _search(db, member, body)


@router.patch("/admin/sessions")
async def search_sessions_as_admin(
    body: SessionSearch,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> Page[SessionRead]:
    return await _search(db, admin, body)


@router.patch("/adminUser/sessions")
async def search_sessions_as_admin_user(
    body: SessionSearch,
    db: AsyncSession = Depends(get_session),
    admin_user: AdminUserPayload = Depends(authorize_as_admin_user),
) -> Page[SessionRead]:
    return await _search(db, admin_user, body)


@router.get("/member/sessions/{session_id}")
async def get_member_session(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    member: MemberPayload = Depends(authorize_as_member),
) -> SessionRead:
    session = await session_manager.get_owned(db, session_id, member)
    return SessionRead.model_validate(session)


@router.delete("/member/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_member_session(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    member: MemberPayload = Depends(authorize_as_member),
) -> Response:
    """Log out one of the member's own sessions."""
    return await _revoke(db, session_id, member)


@router.delete("/admin/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_session_as_admin(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin: AdminPayload = Depends(authorize_as_admin),
) -> Response:
    return await _revoke(db, session_id, admin)


@router.delete("/adminUser/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_session_as_admin_user(
    session_id: uuid.UUID,
    db: AsyncSession = Depends(get_session),
    admin_user: AdminUserPayload = Depends(authorize_as_admin_user),
) -> Response:
    return await _revoke(db, session_id, admin_user)
