"""structlog setup. JSON in deployed environments, console output locally."""

import logging
from collections.abc import MutableMapping
from typing import Any

import structlog

from planmoni_admin.config import Settings

SERVICE_NAME = "planmoni-admin"


def _service_context(environment: str) -> structlog.types.Processor:
    def add_service(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:  # noqa: ANN401
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service


def setup_logging(settings: Settings) -> None:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_context(settings.environment),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.debug))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=getattr(logging, settings.log_level.upper(), logging.INFO))
    # supabase-py issues every PostgREST, Auth and Storage call through httpx
    for name in settings.quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
