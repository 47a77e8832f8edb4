"""Exception handlers that turn every failure into a JSON body the dashboard can show.

Supabase and edge function failures are upstream problems and map to 502.
Anything else unhandled is a 500. Both carry the request id so the admin can
quote it.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from supabase import PostgrestAPIError, StorageException

from planmoni_admin.edge_functions import EdgeFunctionError

logger = structlog.get_logger()


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors with their ``ctx`` values stringified (they can hold exception instances)."""
    errors = []
    for error in exc.errors():
        item = dict(error)
        if "ctx" in item:
            item["ctx"] = {k: str(v) for k, v in item["ctx"].items()}
        errors.append(item)
    return errors


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": "Validation error", "errors": jsonable_errors(exc)})


async def _postgrest_error(request: Request, exc: PostgrestAPIError) -> JSONResponse:
    logger.error("upstream_query_failed", code=exc.code, error=exc.message, hint=exc.hint)
    return JSONResponse(
        status_code=502,
        content={"detail": "Upstream data service error", "request_id": _request_id(request)},
    )


async def _storage_error(request: Request, exc: StorageException) -> JSONResponse:
    logger.error("upstream_storage_failed", error=str(exc))
    return JSONResponse(
        status_code=502,
        content={"detail": "Upstream storage error", "request_id": _request_id(request)},
    )


async def _edge_function_error(_request: Request, exc: EdgeFunctionError) -> JSONResponse:
    # The function's own message is meant for the admin ("No push tokens for segment", ...)
    return JSONResponse(status_code=502, content={"detail": exc.message, "function": exc.function})


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": _request_id(request)},
    )


_HANDLERS = (
    (StarletteHTTPException, _http_error),
    (RequestValidationError, _validation_error),
    (PostgrestAPIError, _postgrest_error),
    (StorageException, _storage_error),
    (EdgeFunctionError, _edge_function_error),
    (Exception, _unhandled_error),
)


def setup_error_handlers(app: FastAPI) -> None:
    for exc_class, handler in _HANDLERS:
        app.add_exception_handler(exc_class, handler)  # type: ignore[arg-type]
