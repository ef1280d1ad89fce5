"""Tests for the Redis-backed login rate limiter."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from community_platform.security.rate_limiter import RateLimiter, login_key


def _make_redis(count=1, ttl=120):
    redis = AsyncMock()
    redis.incr = AsyncMock(return_value=count)
    redis.ttl = AsyncMock(return_value=ttl)
    return redis


class TestCheck:
    @pytest.mark.asyncio()
    async def test_first_attempt_starts_window(self):
        redis = _make_redis(count=1)

        allowed, retry_after = await RateLimiter(redis).check("k", limit=5, window=300)

        assert (allowed, retry_after) == (True, 0)
        redis.expire.assert_awaited_once_with("k", 300)

    @pytest.mark.asyncio()
    async def test_within_limit(self):
        redis = _make_redis(count=5)

        allowed, _ = await RateLimiter(redis).check("k", limit=5, window=300)

        assert allowed is True
        redis.expire.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_over_limit_reports_ttl(self):
        redis = _make_redis(count=6, ttl=42)

        assert await RateLimiter(redis).check("k", limit=5, window=300) == (False, 42)

    @pytest.mark.asyncio()
    async def test_retry_after_at_least_one_second(self):
        redis = _make_redis(count=6, ttl=-1)

        assert await RateLimiter(redis).check("k", limit=5, window=300) == (False, 1)

    @pytest.mark.asyncio()
    async def test_fails_open_when_redis_down(self):
        redis = AsyncMock()
        redis.incr = AsyncMock(side_effect=RedisConnectionError("down"))

        assert await RateLimiter(redis).check("k", limit=5, window=300) == (True, 0)


class TestReset:
    @pytest.mark.asyncio()
    async def test_deletes_key(self):
        redis = _make_redis()

        await RateLimiter(redis).reset("k")

        redis.delete.assert_awaited_once_with("k")

    @pytest.mark.asyncio()
    async def test_swallows_redis_errors(self):
        redis = AsyncMock()
        redis.delete = AsyncMock(side_effect=RedisConnectionError("down"))

        await RateLimiter(redis).reset("k")


class TestLoginKey:
    def test_normalizes_email(self):
        assert login_key("member", "  Ada@Example.COM ") == "login:member:ada@example.com"

    def test_scoped_by_role(self):
        assert login_key("admin", "a@b.it") != login_key("member", "a@b.it")
