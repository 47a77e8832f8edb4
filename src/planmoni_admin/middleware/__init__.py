"""Middleware and exception handler registration."""

from fastapi import FastAPI

from planmoni_admin.config import Settings
from planmoni_admin.middleware.cors import setup_cors
from planmoni_admin.middleware.error_handler import setup_error_handlers
from planmoni_admin.middleware.logging import setup_logging
from planmoni_admin.middleware.rate_limit import RateLimitMiddleware
from planmoni_admin.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Wire logging, error handlers and the middleware stack.

    The last middleware added is the outermost. Request ids wrap the rate
    limiter so 429s carry an id and get logged, and CORS wraps everything.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware, slow_request_ms=settings.slow_request_ms)
    setup_cors(app, settings)
