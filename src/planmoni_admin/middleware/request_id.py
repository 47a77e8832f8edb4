"""Request id propagation and access logging."""

import time
import uuid
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

_QUIET_PATHS = frozenset({"/health", "/ready"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an X-Request-Id and log it once it completes.

    The dashboard sends its own id so a failed screen load can be matched
    to the server log. Otherwise a uuid4 is generated.
    """

    def __init__(self, app: Any, slow_request_ms: int = 1500) -> None:  # noqa: ANN401
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=request.url.path)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 1)

        response.headers["X-Request-Id"] = request_id
        if request.url.path not in _QUIET_PATHS:
            log = logger.warning if duration_ms >= self.slow_request_ms else logger.info
            log("request_completed", status=response.status_code, duration_ms=duration_ms)
        return response
