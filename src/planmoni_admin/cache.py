"""Redis-backed JSON response cache.

Keys look like ``cache:<area>:<suffix>``. When Redis is not initialised or
not reachable the loader runs uncached.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import structlog
from redis.exceptions import RedisError

from planmoni_admin.redis_client import get_redis

logger = structlog.get_logger()

CACHE_AREAS = (
    "dashboard",
    "analytics",
    "users",
    "transactions",
    "kyc",
    "payout-plans",
    "payout-events",
    "calendar",
    "emergency-withdrawals",
    "activity",
    "audit-logs",
    "notifications",
    "marketing",
    "banners",
    "app-versions",
    "super-admin",
    "permissions",
)


def cache_key(area: str, *parts: object) -> str:
    """Build a cache key for an area and its query parameters."""
    suffix = ":".join("" if p is None else str(p) for p in parts)
    return f"cache:{area}:{suffix}"


async def cached(key: str, ttl: int, loader: Callable[[], Awaitable[Any]]) -> Any:  # noqa: ANN401
    """Return the cached JSON value for ``key`` or load, store and return it."""
    try:
        redis = get_redis()
    except RuntimeError:
        return await loader()

    try:
        raw = await redis.get(key)
    except RedisError as exc:
        logger.warning("cache_unavailable", key=key, error=str(exc))
        return await loader()
    if raw:
        return json.loads(raw)

    value = await loader()
    try:
        await redis.setex(key, ttl, json.dumps(value, default=str))
    except RedisError as exc:
        logger.warning("cache_write_failed", key=key, error=str(exc))
    return value


async def invalidate(areas: Iterable[str] | None = None) -> int:
    """Delete cached responses for the given areas (all areas when None). Returns deleted count."""
    try:
        redis = get_redis()
    except RuntimeError:
        return 0

    selected = list(areas) if areas else list(CACHE_AREAS)
    deleted = 0
    try:
        for area in selected:
            keys = [key async for key in redis.scan_iter(match=f"cache:{area}:*")]
            if keys:
                deleted += await redis.delete(*keys)
    except RedisError as exc:
        logger.warning("cache_invalidate_failed", areas=selected, deleted=deleted, error=str(exc))
        return deleted
    logger.info("cache_invalidated", areas=selected, deleted=deleted)
    return deleted
