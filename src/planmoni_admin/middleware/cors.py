"""CORS for the admin dashboard origins."""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from planmoni_admin.config import Settings

logger = structlog.get_logger()


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured dashboard origins, plus preview deploys matching ``cors_origin_regex``.

    Browsers reject credentialed responses with a wildcard origin, so a ``*``
    entry turns credentials off.
    """
    wildcard = "*" in settings.cors_origins
    if wildcard:
        logger.warning("cors_wildcard_origin", credentials=False)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"],
        max_age=600,
    )
