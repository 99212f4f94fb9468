# config/rate_limit.py
from typing import Optional
from fastapi import Request
from fastapi_limiter import FastAPILimiter
from redis.asyncio import Redis, from_url
from config.settings import settings
import logging

logger = logging.getLogger(__name__)

_redis: Optional[Redis] = None


async def client_key(request: Request) -> str:
    """Limiter bucket per caller; honours X-Forwarded-For behind a proxy."""
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def start_rate_limiter() -> bool:
    """
    Connect redis and arm fastapi-limiter. Returns False when limits are
    disabled; an unreachable redis fails startup.
    """
    global _redis
    if not settings.RATE_LIMIT_ENABLED:
        return False
    if _redis is None:
        # limiter scripts read str counters
        _redis = from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
        await _redis.ping()
    await FastAPILimiter.init(_redis, identifier=client_key)
    logger.info(
        "ratelimit.on times=%d seconds=%d",
        settings.RATE_LIMIT_TIMES,
        settings.RATE_LIMIT_SECONDS,
    )
    return True


async def stop_rate_limiter() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None
