"""Dashboard endpoints: headline stats."""

from fastapi import APIRouter, Depends
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import DASHBOARD, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.dashboard.schemas import DashboardStats
from planmoni_admin.dashboard.service import get_dashboard_stats
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    _admin: CurrentAdmin = Depends(require_permission(DASHBOARD, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """Aggregated dashboard statistics (cached in Redis)."""
    settings = get_settings()
    return await cached(
        cache_key("dashboard", "stats"),
        settings.dashboard_cache_ttl_seconds,
        lambda: get_dashboard_stats(supabase),
    )
