"""End-to-end service flows against a real database (in-memory SQLite via aiosqlite).

Each step runs in its own session and transaction, the way `get_session`
scopes a request, so unique indexes, NOT NULL columns and compare-and-set
updates are enforced by the store rather than by mocks.
"""

from __future__ import annotations

import contextlib
import uuid
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from community_platform.auth.tokens import token_codec
from community_platform.errors import AlreadyExists, InvalidCredential, NotFound
from community_platform.models import Base
from community_platform.models.category import Category
from community_platform.models.enums import IdentityType
from community_platform.models.session import Session
from community_platform.schemas.identity import JoinRequest, LoginRequest, MemberPayload
from community_platform.schemas.resources import CategoryCreate, CategoryUpdate, SessionSearch
from community_platform.security.rate_limiter import RateLimiter
from community_platform.services.accounts import AccountService
from community_platform.services.categories import CategoryService
from community_platform.services.sessions import SessionLifecycleManager

# ── Fixtures ─────────────────────────────────────────────────────────


@pytest_asyncio.fixture()
async def session_factory():
    """Fresh in-memory schema per test; one shared connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly
    @event.listens_for(engine.sync_engine, "connect")
    def _no_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture()
def request_scope(session_factory):
    """Mimic get_session: commit on success, roll back on error."""

    @contextlib.asynccontextmanager
    async def scope():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    return scope


@pytest.fixture()
def accounts():
    redis = AsyncMock()
    redis.incr = AsyncMock(return_value=1)
    return AccountService(sessions=SessionLifecycleManager(), limiter=RateLimiter(redis))


async def _live_sessions(request_scope, owner_id: uuid.UUID) -> int:
    async with request_scope() as db:
        result = await db.execute(
            select(func.count(Session.id)).where(Session.owner_id == owner_id, Session.deleted_at.is_(None))
        )
        return result.scalar()


async def _join_member(request_scope, accounts, email="ada@example.com"):
    async with request_scope() as db:
        return await accounts.join(
            db, IdentityType.MEMBER, JoinRequest(email=email, password="correct-horse-battery")
        )


# ── Account flows ────────────────────────────────────────────────────


class TestAccountFlows:
    @pytest.mark.asyncio()
    async def test_login_then_immediate_refreshes(self, request_scope, accounts):
        joined = await _join_member(request_scope, accounts)
        member_id = joined.account.id

        async with request_scope() as db:
            login = await accounts.login(
                db, IdentityType.MEMBER, LoginRequest(email="ada@example.com", password="correct-horse-battery")
            )
        async with request_scope() as db:
            first = await accounts.refresh(db, IdentityType.MEMBER, login.token.refresh)
        async with request_scope() as db:
            second = await accounts.refresh(db, IdentityType.MEMBER, first.token.refresh)

        assert len({login.token.refresh, first.token.refresh, second.token.refresh}) == 3
        # Join session plus the latest rotation
        assert await _live_sessions(request_scope, member_id) == 2

        # Rotated tokens are spent
        with pytest.raises(InvalidCredential):
            async with request_scope() as db:
                await accounts.refresh(db, IdentityType.MEMBER, first.token.refresh)

    @pytest.mark.asyncio()
    async def test_two_logins_in_the_same_second(self, request_scope, accounts):
        joined = await _join_member(request_scope, accounts)
        body = LoginRequest(email="ada@example.com", password="correct-horse-battery")

        async with request_scope() as db:
            phone = await accounts.login(db, IdentityType.MEMBER, body)
        async with request_scope() as db:
            laptop = await accounts.login(db, IdentityType.MEMBER, body)

        assert phone.token.refresh != laptop.token.refresh
        assert await _live_sessions(request_scope, joined.account.id) == 3

    @pytest.mark.asyncio()
    async def test_same_second_sessions_for_one_identity(self, request_scope):
        manager = SessionLifecycleManager()
        payload = MemberPayload(id=uuid.uuid4())

        first = token_codec.issue(payload)
        second = token_codec.issue(payload, now=first.refreshable_until - token_codec.refresh_ttl)

        async with request_scope() as db:
            await manager.create(db, payload, first.refresh, first.refreshable_until)
            await manager.create(db, payload, second.refresh, second.refreshable_until)

        assert await _live_sessions(request_scope, payload.id) == 2

    @pytest.mark.asyncio()
    async def test_duplicate_email(self, request_scope, accounts):
        await _join_member(request_scope, accounts)

        with pytest.raises(AlreadyExists):
            await _join_member(request_scope, accounts)


# ── Session listing ──────────────────────────────────────────────────


class TestSessionSearch:
    @pytest.mark.asyncio()
    async def test_member_never_sees_other_owners(self, request_scope, accounts):
        ada = await _join_member(request_scope, accounts, "ada@example.com")
        bob = await _join_member(request_scope, accounts, "bob@example.com")
        requester = MemberPayload(id=ada.account.id)

        async with request_scope() as db:
            rows, total, _, _ = await SessionLifecycleManager().search(
                db, requester, SessionSearch(owner_id=bob.account.id)
            )

        assert total == 1
        assert [row.owner_id for row in rows] == [ada.account.id]

    @pytest.mark.asyncio()
    async def test_revoked_sessions_not_listed(self, request_scope, accounts):
        ada = await _join_member(request_scope, accounts)
        requester = MemberPayload(id=ada.account.id)
        manager = SessionLifecycleManager()

        async with request_scope() as db:
            rows, _, _, _ = await manager.search(db, requester, SessionSearch())
        async with request_scope() as db:
            await manager.invalidate(db, rows[0].id, requester)
        async with request_scope() as db:
            rows, total, _, _ = await manager.search(db, requester, SessionSearch())

        assert (rows, total) == ([], 0)


# ── Categories ───────────────────────────────────────────────────────


class TestCategoryLifecycle:
    @pytest.mark.asyncio()
    async def test_create_update_double_delete(self, request_scope):
        service = CategoryService()

        async with request_scope() as db:
            created = await service.create(db, CategoryCreate(code="c1", name="General"))
        async with request_scope() as db:
            updated = await service.update(db, created.id, CategoryUpdate(name="News"))
        assert updated.name == "News"

        async with request_scope() as db:
            await service.delete(db, created.id)
        async with request_scope() as db:
            first_deleted_at = (await service.get(db, created.id, include_deleted=True)).deleted_at
        assert first_deleted_at is not None

        with pytest.raises(NotFound):
            async with request_scope() as db:
                await service.delete(db, created.id)
        with pytest.raises(NotFound):
            async with request_scope() as db:
                await service.get(db, created.id)

        async with request_scope() as db:
            assert (await service.get(db, created.id, include_deleted=True)).deleted_at == first_deleted_at

    @pytest.mark.asyncio()
    async def test_rename_onto_live_name(self, request_scope):
        service = CategoryService()

        async with request_scope() as db:
            await service.create(db, CategoryCreate(code="c1", name="General"))
            other = await service.create(db, CategoryCreate(code="c2", name="News"))

        with pytest.raises(AlreadyExists):
            async with request_scope() as db:
                await service.update(db, other.id, CategoryUpdate(name="General"))

        async with request_scope() as db:
            assert (await service.get(db, other.id)).name == "News"

    @pytest.mark.asyncio()
    async def test_deleted_code_reusable(self, request_scope):
        service = CategoryService()

        async with request_scope() as db:
            first = await service.create(db, CategoryCreate(code="c1", name="General"))
        async with request_scope() as db:
            await service.delete(db, first.id)
        async with request_scope() as db:
            second = await service.create(db, CategoryCreate(code="c1", name="General"))

        async with request_scope() as db:
            result = await db.execute(select(func.count(Category.id)).where(Category.code == "c1"))
            assert result.scalar() == 2
        assert second.id != first.id
