"""Shared FastAPI dependencies."""

from redis.asyncio import Redis

from planmoni_admin.redis_client import get_redis


async def get_optional_redis() -> Redis | None:
    """The Redis client, or None when it was never initialised."""
    try:
        return get_redis()
    except RuntimeError:
        return None
