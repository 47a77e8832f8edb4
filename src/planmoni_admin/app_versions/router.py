"""App version endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from supabase import AsyncClient

from planmoni_admin.app_versions.schemas import AppVersionRequest
from planmoni_admin.app_versions.service import create_version, list_versions, toggle_version, update_version
from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import APP_VERSIONS, MANAGE, VIEW
from planmoni_admin.cache import invalidate
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/app-versions", tags=["App Versions"])

_can_manage = require_permission(APP_VERSIONS, MANAGE)


@router.get("")
async def app_versions(
    _admin: CurrentAdmin = Depends(require_permission(APP_VERSIONS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    return await list_versions(supabase)


@router.post("", status_code=201)
async def create(
    body: AppVersionRequest,
    _admin: CurrentAdmin = Depends(_can_manage),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    version = await create_version(supabase, body)
    await invalidate(["app-versions"])
    return version


@router.put("/{version_id}")
async def update(
    version_id: str,
    body: AppVersionRequest,
    _admin: CurrentAdmin = Depends(_can_manage),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    try:
        version = await update_version(supabase, version_id, body)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await invalidate(["app-versions"])
    return version


@router.post("/{version_id}/toggle")
async def toggle(
    version_id: str,
    _admin: CurrentAdmin = Depends(_can_manage),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """Activate or deactivate a version. Only one version is ever active."""
    try:
        version = await toggle_version(supabase, version_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await invalidate(["app-versions"])
    return version
