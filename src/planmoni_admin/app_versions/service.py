"""Mobile app release gates.

At most one row in ``app_versions`` is active. Activating a row deactivates
every other row.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from supabase import AsyncClient

from planmoni_admin.app_versions.schemas import AppVersionRequest

logger = structlog.get_logger()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def list_versions(supabase: AsyncClient) -> dict:
    """All versions newest first, plus the active one (or None)."""
    result = await supabase.table("app_versions").select("*").order("created_at", desc=True).execute()
    versions = result.data or []
    active = next((v for v in versions if v.get("is_active")), None)
    return {"versions": versions, "active": active}


async def _deactivate_others(supabase: AsyncClient, keep_id: str | None = None) -> None:
    query = supabase.table("app_versions").update({"is_active": False, "updated_at": _now_iso()}).eq("is_active", True)
    if keep_id is not None:
        query = query.neq("id", keep_id)
    await query.execute()


async def create_version(supabase: AsyncClient, request: AppVersionRequest) -> dict:
    if request.is_active:
        await _deactivate_others(supabase)
    result = await supabase.table("app_versions").insert(request.model_dump()).execute()
    version = result.data[0]
    logger.info("app_version_created", version_id=version.get("id"), active=request.is_active)
    return version


async def update_version(supabase: AsyncClient, version_id: str, request: AppVersionRequest) -> dict:
    """
    Replace a version's fields.

    Raises:
        LookupError: If no version has this id.
    """
    result = (
        await supabase.table("app_versions")
        .update({**request.model_dump(), "updated_at": _now_iso()})
        .eq("id", version_id)
        .execute()
    )
    if not result.data:
        msg = "App version not found"
        raise LookupError(msg)
    # target row must exist before any other version is turned off
    if request.is_active:
        await _deactivate_others(supabase, keep_id=version_id)
    return result.data[0]


async def toggle_version(supabase: AsyncClient, version_id: str) -> dict:
    """Flip a version's active flag, deactivating the others when it turns on."""
    current = await supabase.table("app_versions").select("id, is_active").eq("id", version_id).maybe_single().execute()
    if current is None or not current.data:
        msg = "App version not found"
        raise LookupError(msg)

    activate = not current.data.get("is_active")
    if activate:
        await _deactivate_others(supabase, keep_id=version_id)
    result = (
        await supabase.table("app_versions")
        .update({"is_active": activate, "updated_at": _now_iso()})
        .eq("id", version_id)
        .execute()
    )
    logger.info("app_version_toggled", version_id=version_id, active=activate)
    return result.data[0]
