"""Activity feed endpoint."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from supabase import AsyncClient

from planmoni_admin.activity.service import get_activity
from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import ACTIVITY, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/activity", tags=["Activity"])


@router.get("")
async def activity(
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    _admin: CurrentAdmin = Depends(require_permission(ACTIVITY, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """Recent audit logs, events and transactions with activity counters."""
    return await cached(
        cache_key("activity", date_from, date_to),
        get_settings().short_cache_ttl_seconds,
        lambda: get_activity(supabase, date_from, date_to),
    )
