"""Analytics endpoint."""

from fastapi import APIRouter, Depends
from supabase import AsyncClient

from planmoni_admin.analytics.service import get_analytics
from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import ANALYTICS, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/analytics", tags=["Analytics"])


@router.get("")
async def analytics(
    _admin: CurrentAdmin = Depends(require_permission(ANALYTICS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """User growth, transaction volume, payout distribution, retention and daily flows."""
    return await cached(
        cache_key("analytics", "overview"),
        get_settings().analytics_cache_ttl_seconds,
        lambda: get_analytics(supabase),
    )
