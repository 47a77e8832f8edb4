"""Super admin endpoints. Every route requires `is_super_admin()` to hold for the caller."""

from fastapi import APIRouter, Depends, HTTPException
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_super_admin
from planmoni_admin.cache import cache_key, cached, invalidate
from planmoni_admin.config import get_settings
from planmoni_admin.super_admin.schemas import AssignRolesRequest, RoleRequest
from planmoni_admin.super_admin.service import assign_roles, create_role, delete_role, get_overview, update_role
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/super-admin", tags=["Super Admin"])

# Role changes alter what every cached permission set should contain
_ROLE_AREAS = ["super-admin", "permissions"]


@router.get("")
async def overview(
    _admin: CurrentAdmin = Depends(require_super_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """System stats, roles with permissions and users with their roles."""
    return await cached(
        cache_key("super-admin", "overview"),
        get_settings().super_admin_cache_ttl_seconds,
        lambda: get_overview(supabase),
    )


@router.post("/roles", status_code=201)
async def create(
    body: RoleRequest,
    admin: CurrentAdmin = Depends(require_super_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    role = await create_role(supabase, admin.id, body)
    await invalidate(_ROLE_AREAS)
    return role


@router.put("/roles/{role_id}")
async def update(
    role_id: str,
    body: RoleRequest,
    admin: CurrentAdmin = Depends(require_super_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    try:
        await update_role(supabase, admin.id, role_id, body)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await invalidate(_ROLE_AREAS)
    return {"status": "updated", "role_id": role_id}


@router.delete("/roles/{role_id}")
async def delete(
    role_id: str,
    admin: CurrentAdmin = Depends(require_super_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    try:
        await delete_role(supabase, admin.id, role_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await invalidate(_ROLE_AREAS)
    return {"status": "deleted", "role_id": role_id}


@router.post("/users/{user_id}/roles")
async def assign(
    user_id: str,
    body: AssignRolesRequest,
    admin: CurrentAdmin = Depends(require_super_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    await assign_roles(supabase, admin.id, user_id, body)
    await invalidate(_ROLE_AREAS)
    return {"status": "assigned", "user_id": user_id}
