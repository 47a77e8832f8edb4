"""Super admin: system stats, roles, permissions and role assignment.

Every mutation is recorded in ``audit_logs`` with the acting admin's id.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import structlog
from supabase import AsyncClient, PostgrestAPIError

from planmoni_admin.auth.permissions import fetch_user_roles
from planmoni_admin.super_admin.schemas import AssignRolesRequest, RoleRequest

logger = structlog.get_logger()

FALLBACK_STATS = {
    "total_users": 0,
    "total_admins": 0,
    "total_roles": 0,
    "total_permissions": 0,
    "recent_role_assignments": 0,
    "failed_login_attempts": 0,
    "system_health_score": 85,
    "pending_user_verifications": 0,
}


async def get_overview(supabase: AsyncClient) -> dict:
    """System stats, roles with permissions and every user with their roles."""
    stats, roles, users = await asyncio.gather(
        _stats(supabase),
        _roles_with_permissions(supabase),
        _users_with_roles(supabase),
    )
    return {"stats": stats, "roles": roles, "users": users}


async def _stats(supabase: AsyncClient) -> dict:
    try:
        result = await supabase.rpc("get_super_admin_stats", {}).execute()
    except PostgrestAPIError as exc:
        logger.warning("super_admin_stats_rpc_failed", error=exc.message)
        return dict(FALLBACK_STATS)
    return (result.data or [None])[0] or dict(FALLBACK_STATS)


async def _roles_with_permissions(supabase: AsyncClient) -> list[dict]:
    try:
        result = await supabase.rpc("get_all_roles_with_permissions", {}).execute()
    except PostgrestAPIError as exc:
        logger.warning("roles_rpc_failed", error=exc.message)
        return []
    return result.data or []


async def _users_with_roles(supabase: AsyncClient) -> list[dict]:
    try:
        result = (
            await supabase.table("profiles")
            .select("id, first_name, last_name, email, is_admin, created_at")
            .order("created_at", desc=True)
            .execute()
        )
    except PostgrestAPIError as exc:
        logger.warning("super_admin_users_failed", error=exc.message)
        return []

    profiles = result.data or []
    roles = await asyncio.gather(*(fetch_user_roles(supabase, p["id"]) for p in profiles))
    return [{**profile, "roles": user_roles} for profile, user_roles in zip(profiles, roles, strict=True)]


async def _audit(
    supabase: AsyncClient,
    actor_id: str,
    action: str,
    resource_type: str,
    resource_id: str,
    new_values: Any = None,  # noqa: ANN401
) -> None:
    row = {
        "user_id": actor_id,
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
    }
    if new_values is not None:
        row["new_values"] = new_values
    try:
        await supabase.table("audit_logs").insert(row).execute()
    except PostgrestAPIError as exc:
        logger.warning("audit_log_write_failed", action=action, error=exc.message)


async def _grant_permissions(supabase: AsyncClient, role_id: str, permission_ids: list[str]) -> None:
    if permission_ids:
        await (
            supabase.table("role_permissions")
            .insert([{"role_id": role_id, "permission_id": pid} for pid in permission_ids])
            .execute()
        )


def _role_row(request: RoleRequest) -> dict:
    return {
        "name": request.name,
        "description": request.description,
        "level": request.level,
        "color": request.color,
    }


async def create_role(supabase: AsyncClient, actor_id: str, request: RoleRequest) -> dict:
    result = await supabase.table("roles").insert({**_role_row(request), "is_system": False}).execute()
    role = result.data[0]
    await _grant_permissions(supabase, role["id"], request.permissions)
    await _audit(supabase, actor_id, "create_role", "roles", role["id"], request.model_dump())
    logger.info("role_created", role_id=role["id"], actor_id=actor_id)
    return role


async def update_role(supabase: AsyncClient, actor_id: str, role_id: str, request: RoleRequest) -> None:
    """
    Update role fields and replace its permission set.

    Raises:
        LookupError: If the role does not exist.
    """
    result = await supabase.table("roles").update(_role_row(request)).eq("id", role_id).execute()
    if not result.data:
        msg = "Role not found"
        raise LookupError(msg)
    await supabase.table("role_permissions").delete().eq("role_id", role_id).execute()
    await _grant_permissions(supabase, role_id, request.permissions)
    await _audit(supabase, actor_id, "update_role", "roles", role_id, request.model_dump())
    logger.info("role_updated", role_id=role_id, actor_id=actor_id)


async def delete_role(supabase: AsyncClient, actor_id: str, role_id: str) -> None:
    """
    Remove a custom role with its permissions and assignments.

    Raises:
        LookupError: If the role does not exist.
        ValueError: If the role is a system role.
    """
    existing = await supabase.table("roles").select("id, is_system").eq("id", role_id).maybe_single().execute()
    if existing is None or not existing.data:
        msg = "Role not found"
        raise LookupError(msg)
    if existing.data.get("is_system"):
        msg = "System roles cannot be deleted"
        raise ValueError(msg)

    await supabase.table("role_permissions").delete().eq("role_id", role_id).execute()
    await supabase.table("user_roles").delete().eq("role_id", role_id).execute()
    await supabase.table("roles").delete().eq("id", role_id).eq("is_system", False).execute()
    await _audit(supabase, actor_id, "delete_role", "roles", role_id)
    logger.info("role_deleted", role_id=role_id, actor_id=actor_id)


async def assign_roles(supabase: AsyncClient, actor_id: str, user_id: str, request: AssignRolesRequest) -> None:
    """Upsert active assignments of the given roles to a user."""
    now = datetime.now(timezone.utc).isoformat()
    rows = [
        {
            "user_id": user_id,
            "role_id": role_id,
            "assigned_by": actor_id,
            "is_active": True,
            "assigned_at": now,
        }
        for role_id in request.role_ids
    ]
    await supabase.table("user_roles").upsert(rows, on_conflict="user_id,role_id").execute()
    await _audit(supabase, actor_id, "assign_roles", "user_roles", user_id, {"role_ids": request.role_ids})
    logger.info("roles_assigned", user_id=user_id, role_count=len(rows), actor_id=actor_id)
