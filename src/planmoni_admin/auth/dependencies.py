"""FastAPI authentication dependencies."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from supabase import AsyncClient

from planmoni_admin.auth.jwt import verify_access_token
from planmoni_admin.auth.permissions import (
    check_super_admin,
    fetch_user_permissions,
    fetch_user_roles,
    has_admin_role,
    has_permission,
)
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.supabase_client import create_user_client, get_supabase

_bearer = HTTPBearer()

PERMISSIONS_CACHE_TTL_SECONDS = 60


@dataclass
class CurrentAdmin:
    """The authenticated admin making the request."""

    id: str
    email: str | None
    access_token: str
    permissions: list[dict[str, Any]] = field(default_factory=list)
    roles: list[dict[str, Any]] = field(default_factory=list)
    is_admin_flag: bool = False
    is_super_admin: bool = False

    @property
    def is_dashboard_admin(self) -> bool:
        return self.is_admin_flag or self.is_super_admin or has_admin_role(self.roles)

    def can(self, resource: str, action: str | None = None) -> bool:
        """Super admins may do anything; everyone else needs a matching permission."""
        return self.is_super_admin or has_permission(self.permissions, resource, action)


async def _load_access(supabase: AsyncClient, user_id: str, access_token: str) -> dict[str, Any]:
    profile = await supabase.table("profiles").select("is_admin").eq("id", user_id).maybe_single().execute()
    roles, permissions, super_admin = await asyncio.gather(
        fetch_user_roles(supabase, user_id),
        fetch_user_permissions(supabase, user_id),
        check_super_admin(await create_user_client(access_token)),
    )
    return {
        "is_admin": bool(profile is not None and profile.data and profile.data.get("is_admin")),
        "is_super_admin": super_admin,
        "roles": roles,
        "permissions": permissions,
    }


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    supabase: AsyncClient = Depends(get_supabase),
) -> CurrentAdmin:
    """
    Verify the Supabase access token and resolve the caller's roles and permissions.

    Raises 401 for a bad token and 403 when the user is not an administrator.
    """
    try:
        payload = verify_access_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user_id = payload["sub"]
    access = await cached(
        cache_key("permissions", user_id),
        PERMISSIONS_CACHE_TTL_SECONDS,
        lambda: _load_access(supabase, user_id, credentials.credentials),
    )
    admin = CurrentAdmin(
        id=user_id,
        email=payload.get("email"),
        access_token=credentials.credentials,
        permissions=access["permissions"],
        roles=access["roles"],
        is_admin_flag=access["is_admin"],
        is_super_admin=access.get("is_super_admin", False),
    )
    if not admin.is_dashboard_admin:
        raise HTTPException(
            status_code=403,
            detail="Access denied. This dashboard is restricted to administrators only.",
        )
    return admin


def require_permission(resource: str, action: str | None = None) -> Callable[..., Awaitable[CurrentAdmin]]:
    """Build a dependency that returns 403 unless the admin holds the permission."""

    async def _check(admin: CurrentAdmin = Depends(get_current_admin)) -> CurrentAdmin:
        if not admin.can(resource, action):
            detail = f"Missing permission: {resource}" + (f":{action}" if action else "")
            raise HTTPException(status_code=403, detail=detail)
        return admin

    return _check


async def require_super_admin(admin: CurrentAdmin = Depends(get_current_admin)) -> CurrentAdmin:
    """Only admins for whom ``is_super_admin()`` holds."""
    if not admin.is_super_admin:
        raise HTTPException(status_code=403, detail="Access denied. Super Admin privileges required.")
    return admin
