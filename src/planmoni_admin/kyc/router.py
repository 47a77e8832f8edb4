"""KYC endpoints."""

from fastapi import APIRouter, Depends, Query
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import KYC, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.kyc.service import KycStatus, list_kyc
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/kyc", tags=["KYC"])


@router.get("")
async def kyc_records(
    search: str | None = Query(None, max_length=200),
    status: KycStatus = Query("all"),
    _admin: CurrentAdmin = Depends(require_permission(KYC, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    return await cached(
        cache_key("kyc", status, search),
        get_settings().short_cache_ttl_seconds,
        lambda: list_kyc(supabase, search, status),
    )
