"""
Rate limiting — fixed window per client IP, counters in Redis.

  - Key: ratelimit:{ip}:{window_index}
  - INCR on every request, EXPIRE set on the first hit of a window
  - Over the limit → 429 with Retry-After
  - Redis unavailable → request allowed, warning logged
"""

import logging
import time

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request

from config import Settings, get_app_settings

logger = logging.getLogger(__name__)

_clients: dict[str, aioredis.Redis] = {}


async def get_redis(url: str) -> aioredis.Redis:
    """One Redis connection per URL, opened on first use."""
    if url not in _clients:
        _clients[url] = aioredis.from_url(url, decode_responses=True)
    return _clients[url]


async def close_redis() -> None:
    while _clients:
        _, client = _clients.popitem()
        await client.aclose()


async def hit(redis_url: str, identifier: str, limit: int, window_seconds: int) -> tuple[bool, int, int]:
    """
    Count one request for `identifier`.

    Returns:
        (allowed, remaining, retry_after_seconds)
    """
    now = int(time.time())
    window = now // window_seconds
    key = f"ratelimit:{identifier}:{window}"

    r = await get_redis(redis_url)
    count = await r.incr(key)
    if count == 1:
        await r.expire(key, window_seconds)

    remaining = max(limit - count, 0)
    retry_after = window_seconds - (now % window_seconds)
    return count <= limit, remaining, retry_after


async def rate_limit(request: Request, cfg: Settings = Depends(get_app_settings)) -> None:
    """Router dependency applied to every /api route."""
    if not cfg.RATE_LIMIT_ENABLED:
        return

    client_ip = request.client.host if request.client else "unknown"
    try:
        allowed, remaining, retry_after = await hit(
            cfg.REDIS_URL, client_ip, cfg.RATE_LIMIT_MAX_REQUESTS, cfg.RATE_LIMIT_WINDOW_SECONDS,
        )
    except aioredis.RedisError as e:
        logger.warning("Rate limiter unavailable, allowing request: %s", e)
        return

    if not allowed:
        logger.info("Rate limit exceeded for %s", client_ip)
        raise HTTPException(
            status_code=429,
            detail="Too many requests, please try again later.",
            headers={"Retry-After": str(retry_after)},
        )
