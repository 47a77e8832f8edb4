"""Client for Supabase Edge Functions.

Functions are called over plain HTTPS: ``POST {supabase_url}/functions/v1/<name>``
with a JSON body and a bearer token.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from planmoni_admin.config import get_settings

logger = structlog.get_logger()

PUSH_NOTIFICATIONS_FUNCTION = "admin-push-notifications"
MARKETING_CAMPAIGNS_FUNCTION = "marketing-campaigns"

_http: httpx.AsyncClient | None = None


class EdgeFunctionError(Exception):
    """An edge function returned a non-2xx response or could not be reached."""

    def __init__(self, function: str, status_code: int, message: str) -> None:
        super().__init__(message)
        self.function = function
        self.status_code = status_code
        self.message = message


async def init_edge_functions() -> None:
    """Create the shared HTTP client."""
    global _http  # noqa: PLW0603
    settings = get_settings()
    _http = httpx.AsyncClient(
        base_url=f"{settings.supabase_url.rstrip('/')}/functions/v1",
        timeout=settings.edge_function_timeout_seconds,
    )


async def close_edge_functions() -> None:
    """Close the shared HTTP client."""
    global _http  # noqa: PLW0603
    if _http is not None:
        await _http.aclose()
        _http = None


def get_edge_functions() -> EdgeFunctionClient:
    """Get an edge function client bound to the shared HTTP client (FastAPI dependency)."""
    if _http is None:
        msg = "Edge function client not initialized. Call init_edge_functions() first."
        raise RuntimeError(msg)
    return EdgeFunctionClient(_http)


class EdgeFunctionClient:
    """Invoke edge functions and normalise their error responses."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    async def invoke(self, function: str, payload: dict[str, Any], token: str) -> dict[str, Any]:
        """POST ``payload`` to ``function`` and return the decoded JSON body."""
        try:
            response = await self.http.post(
                f"/{function}",
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
        except httpx.HTTPError as exc:
            logger.error("edge_function_unreachable", function=function, error=str(exc))
            raise EdgeFunctionError(function, 503, f"{function} is unreachable") from exc

        try:
            body: Any = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_error:
            message = body.get("error") or f"{function} failed with status {response.status_code}"
            logger.warning(
                "edge_function_failed",
                function=function,
                status=response.status_code,
                error=message,
            )
            raise EdgeFunctionError(function, response.status_code, message)

        logger.info("edge_function_invoked", function=function, action=payload.get("action"))
        return body
