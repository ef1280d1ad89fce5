"""Account flows — join, login, and refresh for every identity kind.

Each successful flow issues a token pair and opens a session. Refresh rotates:
the presented session is retired (compare-and-set) and a new one is created,
so a replayed refresh token finds no live session.

Login failures are deliberately generic ("Invalid email or password") to
prevent account enumeration.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from community_platform.auth.authorizer import AUTHORIZERS
from community_platform.auth.passwords import hash_password, verify_password
from community_platform.auth.tokens import TokenCodec, token_codec
from community_platform.config import settings
from community_platform.errors import (
    AlreadyExists,
    InvalidCredential,
    NotEnrolled,
    NotFound,
    RoleMismatch,
    TooManyAttempts,
)
from community_platform.models.enums import IdentityType, TokenType
from community_platform.models.identity import IDENTITY_MODELS, Guest
from community_platform.schemas.identity import (
    AccountRead,
    AuthorizationToken,
    Authorized,
    GuestPayload,
    GuestRead,
    IdentityPayload,
    JoinRequest,
    LoginRequest,
    payload_for,
)
from community_platform.security.rate_limiter import RateLimiter, login_key, rate_limiter
from community_platform.services.sessions import SessionLifecycleManager, session_manager

logger = logging.getLogger(__name__)

_REFRESH_FAILED = "Session not found, refresh token revoked or expired"


def _account_model(role: IdentityType):
    if role is IdentityType.GUEST:
        msg = "Guests have no password account"
        raise ValueError(msg)
    return IDENTITY_MODELS[role]


def _authorized(role: IdentityType, token: AuthorizationToken, record: object) -> Authorized:
    if role is IdentityType.GUEST:
        return Authorized(type=role, token=token, guest=GuestRead.model_validate(record))
    return Authorized(type=role, token=token, account=AccountRead.model_validate(record))


class AccountService:
    """Stateless account flows — AsyncSession passed per call."""

    def __init__(
        self,
        codec: TokenCodec | None = None,
        sessions: SessionLifecycleManager = session_manager,
        limiter: RateLimiter = rate_limiter,
    ) -> None:
        self._codec = codec
        self._sessions = sessions
        self._limiter = limiter

    @property
    def codec(self) -> TokenCodec:
        return self._codec or token_codec

    async def _open_session(
        self,
        db: AsyncSession,
        payload: IdentityPayload,
        device_fingerprint: str | None = None,
    ) -> AuthorizationToken:
        tokens = self.codec.issue(payload)
        await self._sessions.create(db, payload, tokens.refresh, tokens.refreshable_until, device_fingerprint)
        return tokens

    async def join_guest(
        self,
        db: AsyncSession,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Authorized:
        """Create an anonymous guest identity and open its session."""
        guest = Guest(
            id=uuid.uuid4(),
            guest_identifier=uuid.uuid4().hex,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=datetime.now(UTC),
            deleted_at=None,
        )
        db.add(guest)
        await db.flush()

        tokens = await self._open_session(db, GuestPayload(id=guest.id))
        logger.info("Guest joined: %s", guest.id)
        return _authorized(IdentityType.GUEST, tokens, guest)

    async def join(self, db: AsyncSession, role: IdentityType, body: JoinRequest) -> Authorized:
        """Register a password account for a member, admin, or admin user.

        Raises:
            AlreadyExists: email already registered for this role.
        """
        model = _account_model(role)

        result = await db.execute(select(model.id).where(model.email == body.email).limit(1))
        if result.scalar_one_or_none() is not None:
            raise AlreadyExists("An account with this email already exists")

        now = datetime.now(UTC)
        account = model(
            id=uuid.uuid4(),
            email=body.email,
            password_hash=hash_password(body.password),
            display_name=body.display_name,
            is_active=True,
            last_login_at=None,
            created_at=now,
            updated_at=now,
            deleted_at=None,
        )
        try:
            async with db.begin_nested():
                db.add(account)
        except IntegrityError as exc:
            raise AlreadyExists("An account with this email already exists") from exc

        tokens = await self._open_session(db, payload_for(role, account.id))
        logger.info("%s joined: %s", role.value, account.id)
        return _authorized(role, tokens, account)

    async def login(self, db: AsyncSession, role: IdentityType, body: LoginRequest) -> Authorized:
        """Authenticate by email and password.

        Raises:
            TooManyAttempts: throttled for this (role, email).
            InvalidCredential: unknown, inactive, deleted, or wrong password.
        """
        model = _account_model(role)

        key = login_key(role.value, body.email)
        allowed, retry_after = await self._limiter.check(
            key,
            limit=settings.security.login_attempt_limit,
            window=settings.security.login_attempt_window_seconds,
        )
        if not allowed:
            logger.warning("Login throttled for %s", key)
            raise TooManyAttempts(retry_after)

        result = await db.execute(select(model).where(model.email == body.email))
        account = result.scalar_one_or_none()
        if (
            account is None
            or not account.is_active
            or account.deleted_at is not None
            or not verify_password(body.password, account.password_hash)
        ):
            raise InvalidCredential("Invalid email or password")

        now = datetime.now(UTC)
        account.last_login_at = now
        account.updated_at = now
        await self._limiter.reset(key)

        tokens = await self._open_session(db, payload_for(role, account.id), body.device_fingerprint)
        logger.info("%s logged in: %s", role.value, account.id)
        return _authorized(role, tokens, account)

    async def refresh(self, db: AsyncSession, role: IdentityType, refresh_token: str) -> Authorized:
        """Exchange a refresh token for a new pair, rotating the session.

        Raises:
            InvalidCredential: bad token, or no live session for it.
            RoleMismatch: refresh token of another role.
            NotEnrolled: the identity is no longer live.
        """
        payload = self.codec.verify(refresh_token, TokenType.REFRESH)
        if payload.type != role.value:
            raise RoleMismatch(payload.type)

        session = await self._sessions.lookup_by_refresh_token(db, refresh_token)
        if session is None or session.owner_type != payload.type or session.owner_id != payload.id:
            raise InvalidCredential(_REFRESH_FAILED)

        record = await AUTHORIZERS[role].lookup(db, payload.id)
        if record is None:
            raise NotEnrolled()

        try:
            await self._sessions.retire(db, session)
        except NotFound as exc:
            # Lost a race with a concurrent refresh or revocation
            raise InvalidCredential(_REFRESH_FAILED) from exc

        tokens = await self._open_session(db, payload, session.device_fingerprint)
        logger.info("%s refreshed: %s (session %s rotated)", role.value, payload.id, session.id)
        return _authorized(role, tokens, record)


# Module-level singleton
account_service = AccountService()
