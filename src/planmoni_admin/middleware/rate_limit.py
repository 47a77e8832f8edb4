"""Fixed-window rate limiting backed by Redis counters."""

import hashlib
import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from planmoni_admin.redis_client import get_redis

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready"})


def rate_limit_identity(request: Request) -> str:
    """Who a request counts against: the bearer token when present, else the client IP.

    Admins often share one office IP, so signed-in traffic is counted per
    session. Only a digest of the token is used in the key.
    """
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer ") and len(auth) > 7:
        digest = hashlib.sha256(auth[7:].encode()).hexdigest()[:16]
        return f"token:{digest}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow ``requests_per_window`` requests per identity per window.

    Requests pass unlimited while Redis is missing or unreachable.
    """

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    def _headers(self, remaining: int) -> dict[str, str]:
        return {"X-RateLimit-Remaining": str(remaining), "X-RateLimit-Limit": str(self.requests_per_window)}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            return await call_next(request)

        identity = rate_limit_identity(request)
        window = int(time.time()) // self.window_seconds
        key = f"ratelimit:{identity}:{window}"

        pipe = redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds + 1)
        try:
            count, _ = await pipe.execute()
        except RedisError as exc:
            logger.warning("rate_limit_unavailable", error=str(exc))
            return await call_next(request)

        if count > self.requests_per_window:
            if count == self.requests_per_window + 1:
                logger.warning("rate_limit_exceeded", identity=identity, path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(self.window_seconds), **self._headers(0)},
            )

        response = await call_next(request)
        response.headers.update(self._headers(max(0, self.requests_per_window - count)))
        return response
