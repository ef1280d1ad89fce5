"""Session lifecycle — create, look up, list, and soft-invalidate sessions.

Sessions are created on join/login/refresh with `deleted_at = NULL` and are
only ever mutated by setting `deleted_at`. Invalidation is terminal: a second
attempt fails with NotFound, the same error as for an id that never existed,
so callers cannot tell "revoked" from "unknown".

Invalidating a session stops its refresh token from being used; the access
token it issued stays cryptographically valid until it expires.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.errors import NotFound
from community_platform.models.enums import IdentityType
from community_platform.models.session import Session
from community_platform.schemas.identity import IdentityPayload
from community_platform.schemas.resources import SessionSearch
from community_platform.services.soft_delete import SoftDeleteGuard, clamp_paging, session_guard

logger = logging.getLogger(__name__)


def refresh_token_digest(refresh_token: str) -> str:
    """SHA-256 hex digest used to index sessions by refresh token."""
    return hashlib.sha256(refresh_token.encode("utf-8")).hexdigest()


class SessionLifecycleManager:
    """Stateless session operations — AsyncSession passed per call."""

    def __init__(self, guard: SoftDeleteGuard[Session] = session_guard) -> None:
        self._guard = guard

    async def create(
        self,
        db: AsyncSession,
        owner: IdentityPayload,
        refresh_token: str,
        expires_at: datetime,
        device_fingerprint: str | None = None,
    ) -> Session:
        """Persist a new live session for the owner."""
        session = Session(
            id=uuid.uuid4(),
            owner_type=owner.type,
            owner_id=owner.id,
            refresh_token_digest=refresh_token_digest(refresh_token),
            device_fingerprint=device_fingerprint,
            expires_at=expires_at,
            created_at=datetime.now(UTC),
            deleted_at=None,
        )
        db.add(session)
        await db.flush()

        logger.info("Session created: %s for %s:%s", session.id, owner.type, owner.id)
        return session

    async def lookup(self, db: AsyncSession, session_id: uuid.UUID) -> Session:
        """Fetch a live session. Raises NotFound."""
        return await self._guard.read_active(db, session_id)

    async def lookup_by_refresh_token(
        self,
        db: AsyncSession,
        refresh_token: str,
        now: datetime | None = None,
    ) -> Session | None:
        """Fetch the live, unexpired session a refresh token was issued for."""
        now = now or datetime.now(UTC)
        result = await db.execute(
            select(Session).where(
                Session.refresh_token_digest == refresh_token_digest(refresh_token),
                Session.deleted_at.is_(None),
                Session.expires_at > now,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def can_manage(session: Session, requester: IdentityPayload) -> bool:
        """Owners manage their own sessions; admins and admin users manage any."""
        if IdentityType(requester.type).is_privileged:
            return True
        return session.owner_type == requester.type and session.owner_id == requester.id

    async def get_owned(
        self,
        db: AsyncSession,
        session_id: uuid.UUID,
        requester: IdentityPayload,
    ) -> Session:
        """Fetch a live session the requester may see. Foreign sessions read as NotFound."""
        session = await self.lookup(db, session_id)
        if not self.can_manage(session, requester):
            logger.info("Session %s requested by non-owner %s:%s", session_id, requester.type, requester.id)
            raise NotFound("Session not found")
        return session

    async def invalidate(
        self,
        db: AsyncSession,
        session_id: uuid.UUID,
        requester: IdentityPayload,
    ) -> Session:
        """Soft-invalidate a session on behalf of its owner or an admin.

        Raises:
            NotFound: session unknown, already invalidated, or not the requester's.
        """
        session = await self.get_owned(db, session_id, requester)
        await self._guard.delete(db, session.id)

        logger.info("Session %s invalidated by %s:%s", session.id, requester.type, requester.id)
        return session

    async def search(
        self,
        db: AsyncSession,
        requester: IdentityPayload,
        query: SessionSearch,
        now: datetime | None = None,
    ) -> tuple[list[Session], int, int, int]:
        """Live sessions matching the filters, newest first.

        Non-privileged requesters are always scoped to their own sessions,
        whatever owner filters the query carries.

        Returns (rows, total, page, limit) with paging normalized.
        """
        now = now or datetime.now(UTC)
        page, limit = clamp_paging(query.page, query.limit)

        criteria: list[ColumnElement[bool]] = []
        if IdentityType(requester.type).is_privileged:
            if query.owner_type is not None:
                criteria.append(Session.owner_type == query.owner_type.value)
            if query.owner_id is not None:
                criteria.append(Session.owner_id == query.owner_id)
        else:
            criteria += [Session.owner_type == requester.type, Session.owner_id == requester.id]

        if query.active_only:
            criteria.append(Session.expires_at > now)
        if query.expired_only:
            criteria.append(Session.expires_at <= now)
        if query.device_fingerprint is not None:
            criteria.append(Session.device_fingerprint == query.device_fingerprint)
        if query.search:
            criteria.append(Session.device_fingerprint.ilike(f"%{query.search}%"))
        if query.created_at_from is not None:
            criteria.append(Session.created_at >= query.created_at_from)
        if query.created_at_to is not None:
            criteria.append(Session.created_at <= query.created_at_to)

        rows, total = await self._guard.list_active(db, page, limit, tuple(criteria))
        return rows, total, page, limit

    async def retire(self, db: AsyncSession, session: Session) -> None:
        """System-initiated invalidation (refresh rotation). Raises NotFound if already retired."""
        await self._guard.delete(db, session.id)
        logger.debug("Session %s retired", session.id)


# Module-level singleton
session_manager = SessionLifecycleManager()
