"""Async database engine, session scopes, and lifespan management.

Two session scopes exist:

* `get_session`: the FastAPI dependency. One transaction per request,
  committed when the handler returns and rolled back when it raises.
* `detached_session`: an independent transaction for writes that must
  survive the request's rollback (failed-attempt audit entries).

The Redis client backs the login rate limiter only.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from community_platform.config import settings

logger = logging.getLogger(__name__)

# ── Async PostgreSQL engine ──────────────────────────────────────────

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.max_overflow,
    pool_pre_ping=True,
    pool_recycle=settings.db.pool_recycle_seconds,
)

# expire_on_commit=False: handlers serialize rows after the commit in get_session
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Session scopes ───────────────────────────────────────────────────


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding the request's session.

    Usage:
        @router.delete("/member/sessions/{session_id}")
        async def revoke(session_id: uuid.UUID, db: AsyncSession = Depends(get_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@contextlib.asynccontextmanager
async def detached_session() -> AsyncGenerator[AsyncSession, None]:
    """Session with its own transaction, committed on clean exit."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Redis client ─────────────────────────────────────────────────────

redis_client: aioredis.Redis = aioredis.from_url(
    settings.db.redis_url,
    decode_responses=True,
)


# ── Health ───────────────────────────────────────────────────────────


async def ping() -> dict[str, bool]:
    """Ping PostgreSQL and Redis. Never raises."""
    status = {"database": False, "redis": False}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        status["database"] = True
    except Exception:
        logger.warning("Database ping failed", exc_info=True)

    try:
        status["redis"] = bool(await redis_client.ping())
    except Exception:
        logger.warning("Redis ping failed", exc_info=True)

    return status


# ── Lifespan helpers ─────────────────────────────────────────────────


async def init_db() -> None:
    """Verify connectivity; outside production, create missing tables.

    Production schemas come from Alembic only.
    """
    async with engine.begin() as conn:
        if settings.is_production or not settings.db.create_schema_on_startup:
            await conn.execute(text("SELECT 1"))
            return

        # Importing the package registers every table on Base.metadata
        from community_platform.models import Base

        await conn.run_sync(Base.metadata.create_all)
        logger.info("Schema ensured (%d tables)", len(Base.metadata.tables))


async def close_db() -> None:
    """Dispose the engine pool and close Redis."""
    await engine.dispose()
    await redis_client.aclose()


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Wrap the application lifetime with init_db/close_db."""
    await init_db()
    try:
        yield
    finally:
        await close_db()
