"""Role and permission lookups.

Permissions come from the ``get_user_permissions`` RPC as rows of
``{id, name, resource, action, description}``. Checks match on resource and,
when given, on action.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from supabase import AsyncClient, PostgrestAPIError

from planmoni_admin.config import get_settings

logger = structlog.get_logger()

# Resource names used by the routers
DASHBOARD = "dashboard"
ANALYTICS = "analytics"
USERS = "users"
TRANSACTIONS = "transactions"
KYC = "kyc"
PAYOUTS = "payouts"
ACTIVITY = "activity"
AUDIT_LOGS = "audit_logs"
NOTIFICATIONS = "notifications"
MARKETING = "marketing"
BANNERS = "banners"
APP_VERSIONS = "app_versions"

VIEW = "view"
MANAGE = "manage"


def has_permission(permissions: Iterable[Mapping[str, Any]], resource: str, action: str | None = None) -> bool:
    """True when some permission matches ``resource`` (and ``action`` if given)."""
    for perm in permissions:
        if perm.get("resource") != resource:
            continue
        if action is None or perm.get("action") == action:
            return True
    return False


def has_any_permission(
    permissions: Iterable[Mapping[str, Any]],
    checks: Iterable[tuple[str, str | None]],
) -> bool:
    """True when any ``(resource, action)`` check passes."""
    perms = list(permissions)
    return any(has_permission(perms, resource, action) for resource, action in checks)


def has_admin_role(roles: Iterable[Mapping[str, Any]], allowed: Iterable[str] | None = None) -> bool:
    """True when an active role is one of the dashboard roles."""
    names = set(allowed if allowed is not None else get_settings().admin_role_names)
    return any(role.get("role_name") in names and role.get("is_active") for role in roles)


async def fetch_user_permissions(supabase: AsyncClient, user_id: str) -> list[dict]:
    """Permissions granted to a user through their roles. Empty on RPC failure."""
    try:
        result = await supabase.rpc("get_user_permissions", {"target_user_id": user_id}).execute()
    except PostgrestAPIError as exc:
        logger.warning("permissions_fetch_failed", user_id=user_id, error=exc.message)
        return []
    return result.data or []


async def fetch_user_roles(supabase: AsyncClient, user_id: str) -> list[dict]:
    """Roles assigned to a user. Empty on RPC failure."""
    try:
        result = await supabase.rpc("get_user_roles", {"target_user_id": user_id}).execute()
    except PostgrestAPIError as exc:
        logger.warning("roles_fetch_failed", user_id=user_id, error=exc.message)
        return []
    return result.data or []


async def check_super_admin(user_client: AsyncClient) -> bool:
    """Ask ``is_super_admin()`` as the signed-in user. False on RPC failure."""
    try:
        result = await user_client.rpc("is_super_admin", {}).execute()
    except PostgrestAPIError as exc:
        logger.warning("super_admin_check_failed", error=exc.message)
        return False
    return bool(result.data)


async def is_dashboard_admin(supabase: AsyncClient, user_id: str) -> bool:
    """Admin flag on the profile, or an active admin role."""
    try:
        result = (
            await supabase.table("profiles")
            .select("is_admin")
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
    except PostgrestAPIError as exc:
        logger.warning("profile_admin_check_failed", user_id=user_id, error=exc.message)
    else:
        if result is not None and result.data and result.data.get("is_admin"):
            return True

    roles = await fetch_user_roles(supabase, user_id)
    return has_admin_role(roles)
