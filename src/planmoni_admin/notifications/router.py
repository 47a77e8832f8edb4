"""Push notification endpoints."""

from fastapi import APIRouter, Depends, Query
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import MANAGE, NOTIFICATIONS, VIEW
from planmoni_admin.cache import invalidate
from planmoni_admin.edge_functions import EdgeFunctionClient, get_edge_functions
from planmoni_admin.notifications.schemas import NotificationStats, SendNotificationRequest
from planmoni_admin.notifications.service import (
    get_notification_stats,
    list_notifications,
    list_push_tokens,
    list_segments,
    send_notification,
)
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])

_can_view = require_permission(NOTIFICATIONS, VIEW)


@router.get("")
async def notifications(
    search: str | None = Query(None, max_length=200),
    status: str | None = Query(None),
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    return await list_notifications(supabase, search, status)


@router.get("/segments")
async def segments(
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    return await list_segments(supabase)


@router.get("/stats", response_model=NotificationStats)
async def stats(
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    return await get_notification_stats(supabase)


@router.get("/push-tokens")
async def push_tokens(
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    return await list_push_tokens(supabase)


@router.post("/send")
async def send(
    body: SendNotificationRequest,
    admin: CurrentAdmin = Depends(require_permission(NOTIFICATIONS, MANAGE)),
    functions: EdgeFunctionClient = Depends(get_edge_functions),
) -> dict[str, str]:
    """Send a push notification through the admin push edge function."""
    message = await send_notification(functions, body, admin.access_token)
    await invalidate(["notifications"])
    return {"message": message}
