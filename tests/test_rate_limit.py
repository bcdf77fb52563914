"""Tests for the Redis fixed-window rate limiter (mocked Redis)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, patch
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from config import Settings
from main import create_app


@pytest_asyncio.fixture
async def limited_client(database):
    settings = Settings(
        REDIS_URL="redis://limiter:6379/1", RATE_LIMIT_ENABLED=True, RATE_LIMIT_MAX_REQUESTS=2, RATE_LIMIT_WINDOW_SECONDS=60)
    app = create_app(settings=settings, database=database)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_hit_sets_expiry_on_first_request():
    with patch("services.rate_limit.get_redis", new=AsyncMock()) as mock_get_redis:
        mock_conn = AsyncMock()
        mock_conn.incr.return_value = 1
        mock_get_redis.return_value = mock_conn

        from services.rate_limit import hit
        allowed, remaining, retry_after = await hit("redis://cache:6379/0", "10.0.0.1", limit=5, window_seconds=60)

        assert allowed is True
        assert remaining == 4
        assert 0 < retry_after <= 60
        mock_conn.expire.assert_called_once()
        mock_get_redis.assert_awaited_once_with("redis://cache:6379/0")
        assert mock_conn.incr.call_args.args[0].startswith("ratelimit:10.0.0.1:")


@pytest.mark.asyncio
async def test_hit_over_limit():
    with patch("services.rate_limit.get_redis", new=AsyncMock()) as mock_get_redis:
        mock_conn = AsyncMock()
        mock_conn.incr.return_value = 6
        mock_get_redis.return_value = mock_conn

        from services.rate_limit import hit
        allowed, remaining, _ = await hit("redis://cache:6379/0", "10.0.0.1", limit=5, window_seconds=60)

        assert allowed is False
        assert remaining == 0
        mock_conn.expire.assert_not_called()


@pytest.mark.asyncio
async def test_requests_over_limit_get_429(limited_client):
    with patch("services.rate_limit.get_redis", new=AsyncMock()) as mock_get_redis:
        mock_conn = AsyncMock()
        mock_conn.incr.side_effect = [1, 2, 3]
        mock_get_redis.return_value = mock_conn

        assert (await limited_client.get("/api/meal-plans/")).status_code == 200
        assert (await limited_client.get("/api/meal-plans/")).status_code == 200
        resp = await limited_client.get("/api/meal-plans/")

    assert resp.status_code == 429
    assert resp.json() == {"error": "Too many requests, please try again later."}
    assert int(resp.headers["Retry-After"]) > 0
    mock_get_redis.assert_awaited_with("redis://limiter:6379/1")


@pytest.mark.asyncio
async def test_redis_down_fails_open(limited_client):
    with patch("services.rate_limit.get_redis", new=AsyncMock()) as mock_get_redis:
        mock_conn = AsyncMock()
        mock_conn.incr.side_effect = RedisConnectionError("connection refused")
        mock_get_redis.return_value = mock_conn

        resp = await limited_client.get("/api/meal-plans/")

    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_health_is_not_limited(limited_client):
    with patch("services.rate_limit.get_redis", new=AsyncMock()) as mock_get_redis:
        resp = await limited_client.get("/health")
        mock_get_redis.assert_not_called()

    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_get_redis_keeps_one_client_per_url():
    with patch("services.rate_limit.aioredis.from_url", side_effect=lambda url, **kw: AsyncMock(name=url)) as from_url:
        from services.rate_limit import close_redis, get_redis
        first = await get_redis("redis://one:6379/0")
        again = await get_redis("redis://one:6379/0")
        second = await get_redis("redis://two:6379/0")

        assert first is again
        assert first is not second
        assert [c.args[0] for c in from_url.call_args_list] == ["redis://one:6379/0", "redis://two:6379/0"]

        await close_redis()
        first.aclose.assert_awaited_once()
        second.aclose.assert_awaited_once()
