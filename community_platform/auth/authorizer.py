"""Role authorizers — one generic verify → role check → liveness lookup.

Each role gets an instance parameterized by the discriminator it accepts and
a lookup capability that resolves a subject id to its live backing record.
A token is never sufficient on its own: the backing row is re-read on every
request and must not be soft-deleted (nor inactive, where the table has an
`is_active` flag).

The instances double as FastAPI dependencies:

    @router.delete("/sessions/{session_id}")
    async def revoke(admin: AdminPayload = Depends(authorize_as_admin)):
        ...
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.auth.tokens import TokenCodec, token_codec
from community_platform.db.engine import get_session
from community_platform.errors import InvalidCredential, NotEnrolled, RoleMismatch
from community_platform.models.enums import IdentityType
from community_platform.models.identity import IDENTITY_MODELS, IdentityRecord
from community_platform.schemas.identity import IdentityPayload

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)

# (db, subject_id) -> live record or None
IdentityLookup = Callable[[AsyncSession, uuid.UUID], Awaitable[Any]]


def live_record_lookup(model: type[IdentityRecord]) -> IdentityLookup:
    """Build a lookup that only returns rows that are not deleted (and active, if flagged)."""
    has_active_flag = hasattr(model, "is_active")

    async def lookup(db: AsyncSession, subject_id: uuid.UUID) -> IdentityRecord | None:
        query = select(model).where(model.id == subject_id, model.deleted_at.is_(None))
        if has_active_flag:
            query = query.where(model.is_active.is_(True))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    lookup.__name__ = f"live_{model.__tablename__}_lookup"
    return lookup


class RoleAuthorizer:
    """Authorizes a bearer token for exactly one identity kind."""

    def __init__(
        self,
        role: IdentityType,
        lookup: IdentityLookup,
        codec: TokenCodec | None = None,
    ) -> None:
        self.role = role
        self.lookup = lookup
        self._codec = codec

    @property
    def codec(self) -> TokenCodec:
        return self._codec or token_codec

    async def authorize(self, db: AsyncSession, raw_token: str | None) -> IdentityPayload:
        """Return the token's payload if it is valid, of this role, and its subject is live.

        Raises:
            InvalidCredential: missing or unverifiable token.
            RoleMismatch: token of another role (message names the actual role).
            NotEnrolled: subject record missing, deleted, or inactive.
        """
        if not raw_token:
            raise InvalidCredential("Missing Authorization: Bearer <token>")

        payload = self.codec.verify(raw_token)

        if payload.type != self.role.value:
            logger.info("Role mismatch: %s token on %s endpoint", payload.type, self.role.value)
            raise RoleMismatch(payload.type)

        record = await self.lookup(db, payload.id)
        if record is None:
            logger.warning("Rejected %s token for non-live subject %s", payload.type, payload.id)
            raise NotEnrolled()

        return payload

    async def __call__(
        self,
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer),  # noqa: B008
        db: AsyncSession = Depends(get_session),  # noqa: B008
    ) -> IdentityPayload:
        """FastAPI dependency entry point."""
        return await self.authorize(db, credentials.credentials if credentials else None)

    def __repr__(self) -> str:
        return f"<RoleAuthorizer role={self.role.value}>"


AUTHORIZERS: dict[IdentityType, RoleAuthorizer] = {
    role: RoleAuthorizer(role, live_record_lookup(model)) for role, model in IDENTITY_MODELS.items()
}

authorize_as_guest = AUTHORIZERS[IdentityType.GUEST]
authorize_as_member = AUTHORIZERS[IdentityType.MEMBER]
authorize_as_admin = AUTHORIZERS[IdentityType.ADMIN]
authorize_as_admin_user = AUTHORIZERS[IdentityType.ADMIN_USER]
