"""User management endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import USERS, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.supabase_client import get_supabase
from planmoni_admin.users.service import get_user_details, list_users

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("")
async def users(
    search: str | None = Query(None, max_length=200),
    _admin: CurrentAdmin = Depends(require_permission(USERS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """All users with wallet balances and management stats."""
    return await cached(
        cache_key("users", "list", search),
        get_settings().users_cache_ttl_seconds,
        lambda: list_users(supabase, search),
    )


@router.get("/{user_id}")
async def user_details(
    user_id: str,
    _admin: CurrentAdmin = Depends(require_permission(USERS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """One user's profile, wallet, transactions, plans and bank accounts."""
    try:
        return await cached(
            cache_key("users", "detail", user_id),
            get_settings().users_cache_ttl_seconds,
            lambda: get_user_details(supabase, user_id),
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
