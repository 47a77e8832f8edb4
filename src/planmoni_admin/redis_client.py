"""Redis client shared by the response cache, login lockout and rate limiter.

Redis is optional. ``get_redis`` raises ``RuntimeError`` until ``init_redis``
has run, and every caller treats that as running without Redis.
"""

import structlog
from redis.asyncio import Redis

logger = structlog.get_logger()

_client: Redis | None = None


async def init_redis(url: str, *, max_connections: int = 20, socket_timeout: float = 5.0) -> None:
    """Create the shared client. Connections are opened lazily on first command."""
    global _client  # noqa: PLW0603
    _client = Redis.from_url(
        url,
        decode_responses=True,
        max_connections=max_connections,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )
    logger.info("redis_configured", max_connections=max_connections)


async def close_redis() -> None:
    """Close the shared client and its pool."""
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> Redis:
    """Get the Redis client."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client
