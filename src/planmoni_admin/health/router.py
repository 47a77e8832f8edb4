"""Liveness, readiness and version endpoints for the load balancer and deploy checks."""

import asyncio
import time

import httpx
from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from supabase import AsyncClient, PostgrestAPIError

from planmoni_admin.config import get_settings
from planmoni_admin.redis_client import get_redis
from planmoni_admin.supabase_client import get_supabase

router = APIRouter()

_STARTED_AT = time.monotonic()


async def _check_supabase(supabase: AsyncClient) -> str:
    try:
        await supabase.table("profiles").select("id").limit(1).execute()
    except (PostgrestAPIError, httpx.HTTPError) as exc:
        return f"error: {exc}"
    return "ok"


async def _check_redis() -> str:
    try:
        await get_redis().ping()
    except (RuntimeError, RedisError) as exc:
        return f"error: {exc}"
    return "ok"


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    supabase: AsyncClient = Depends(get_supabase),  # noqa: B008
) -> dict[str, object]:
    """Probe Supabase and Redis together.

    A Redis outage only degrades the service (no cache, lockout or rate
    limiting), so the probe still answers 200 and reports per-check status.
    """
    supabase_status, redis_status = await asyncio.gather(_check_supabase(supabase), _check_redis())
    checks = {"supabase": supabase_status, "redis": redis_status}
    status = "ready" if all(v == "ok" for v in checks.values()) else "degraded"
    return {"status": status, "checks": checks}


@router.get("/version")
async def version() -> dict[str, object]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "uptime_seconds": int(time.monotonic() - _STARTED_AT),
    }
