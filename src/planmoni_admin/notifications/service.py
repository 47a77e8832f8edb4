"""Push notification history, segments and sending."""

from __future__ import annotations

import structlog
from supabase import AsyncClient

from planmoni_admin.edge_functions import PUSH_NOTIFICATIONS_FUNCTION, EdgeFunctionClient
from planmoni_admin.notifications.schemas import SendNotificationRequest

logger = structlog.get_logger()

PENDING_STATUSES = frozenset({"draft", "scheduled", "sending"})


def notification_stats(rows: list[dict]) -> dict:
    """Sent/delivered/failed/pending counts and delivery rate over sent notifications."""
    sent = [row for row in rows if row.get("status") == "sent"]
    delivered = sum(row.get("delivered_count") or 0 for row in sent)
    recipients = sum(row.get("total_recipients") or 0 for row in sent)
    return {
        "total_sent": len(sent),
        "total_delivered": delivered,
        "total_failed": sum(row.get("failed_count") or 0 for row in sent),
        "total_pending": sum(1 for row in rows if row.get("status") in PENDING_STATUSES),
        "delivery_rate": round(delivered / recipients * 100) if recipients > 0 else 0,
    }


def matches_search(row: dict, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    return needle in (row.get("title") or "").lower() or needle in (row.get("body") or "").lower()


async def list_notifications(supabase: AsyncClient, search: str | None = None, status: str | None = None) -> list[dict]:
    query = supabase.table("push_notifications").select("*").order("created_at", desc=True)
    if status and status != "all":
        query = query.eq("status", status)
    result = await query.execute()
    return [row for row in result.data or [] if matches_search(row, search)]


async def list_segments(supabase: AsyncClient) -> list[dict]:
    result = await supabase.table("push_notification_segments").select("*").order("name").execute()
    return result.data or []


async def get_notification_stats(supabase: AsyncClient) -> dict:
    result = (
        await supabase.table("push_notifications")
        .select("status, total_recipients, delivered_count, failed_count")
        .execute()
    )
    return notification_stats(result.data or [])


async def list_push_tokens(supabase: AsyncClient) -> list[dict]:
    """Active device tokens, newest first."""
    result = (
        await supabase.table("user_push_tokens")
        .select("*")
        .eq("is_active", True)
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


async def send_notification(functions: EdgeFunctionClient, request: SendNotificationRequest, token: str) -> str:
    """Hand the notification to the push edge function and return its message."""
    payload = {"action": "send_notification", **request.model_dump()}
    body = await functions.invoke(PUSH_NOTIFICATIONS_FUNCTION, payload, token)
    logger.info("push_notification_sent", target_type=request.target_type)
    return body.get("message") or "Notification sent successfully"
