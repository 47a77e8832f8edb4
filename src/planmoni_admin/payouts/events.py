"""Automated payout events and their stats."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog
from supabase import AsyncClient, PostgrestAPIError

logger = structlog.get_logger()

EVENTS_LIMIT = 5000

PAYOUT_COLUMNS = "*, profiles!automated_payouts_user_id_fkey (email, first_name, last_name)"


def computed_event_stats(events: list[dict], total: int | None = None) -> dict:
    """Stats from the loaded events, used when ``get_payout_stats`` is unavailable."""
    return {
        "total": total or len(events),
        "processing": sum(1 for e in events if e.get("status") == "processing"),
        "completed": sum(1 for e in events if e.get("status") == "completed"),
        "failed": sum(1 for e in events if e.get("status") == "failed"),
    }


def matches_search(event: dict, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    user = event.get("user") or {}
    plan = event.get("payout_plan") or {}
    values = (
        event.get("status"),
        event.get("transfer_reference"),
        user.get("email"),
        user.get("first_name"),
        user.get("last_name"),
        plan.get("name"),
    )
    if any(needle in value.lower() for value in values if value):
        return True
    amount = event.get("amount")
    return amount is not None and needle in str(amount)


async def list_payout_events(supabase: AsyncClient, search: str | None = None, status: str | None = None) -> dict:
    """Latest automated payouts with plan details and stats."""
    query = (
        supabase.table("automated_payouts")
        .select(PAYOUT_COLUMNS, count="exact")
        .order("created_at", desc=True)
        .limit(EVENTS_LIMIT)
    )
    if status and status != "all":
        query = query.eq("status", status)

    stats_row, plans, upcoming, payouts = await asyncio.gather(
        _payout_stats(supabase),
        supabase.table("payout_plans").select("id, name, payout_amount, frequency, status").execute(),
        supabase.table("payout_plans")
        .select("user_id")
        .eq("status", "active")
        .not_.is_("next_payout_date", "null")
        .gt("next_payout_date", datetime.now(timezone.utc).isoformat())
        .execute(),
        query.execute(),
    )

    plans_by_id = {plan["id"]: plan for plan in plans.data or []}
    events = []
    for row in payouts.data or []:
        event = dict(row)
        event["user"] = event.pop("profiles", None)
        plan_id = event.get("payout_plan_id")
        event["payout_plan"] = plans_by_id.get(plan_id) if plan_id else None
        events.append(event)

    if stats_row is None:
        stats = computed_event_stats(events, payouts.count)
    else:
        stats = {key: stats_row.get(key) or 0 for key in ("total", "processing", "completed", "failed")}
    stats["users_with_upcoming_payouts"] = len({row.get("user_id") for row in upcoming.data or []})

    return {"events": [e for e in events if matches_search(e, search)], "stats": stats}


async def _payout_stats(supabase: AsyncClient) -> dict | None:
    try:
        result = await supabase.rpc("get_payout_stats", {}).execute()
    except PostgrestAPIError as exc:
        logger.warning("payout_stats_rpc_failed", error=exc.message)
        return None
    data = result.data
    if isinstance(data, list):
        return data[0] if data else {}
    return data or {}
