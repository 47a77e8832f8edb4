"""Monthly payout calendar assembled from payouts, plans and transactions.

Each source is queried independently; a failing source is logged and left
out of the calendar.
"""

from __future__ import annotations

import asyncio
import calendar
from datetime import datetime, timezone

import structlog
from postgrest import AsyncSelectRequestBuilder
from supabase import AsyncClient, PostgrestAPIError

logger = structlog.get_logger()

UNKNOWN_USER = "Unknown User"
DEFAULT_PLAN_NAME = "Payout Plan"

PAYOUT_STATUS_EVENTS = {
    "completed": ("payout_received", "Payout Completed"),
    "failed": ("payout_failed", "Payout Failed"),
    "pending": ("scheduled_payout", "Scheduled Payout"),
}


def user_name(row: dict) -> str:
    profile = row.get("profiles")
    if not profile:
        return UNKNOWN_USER
    return f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip()


def plan_name(row: dict) -> str:
    return (row.get("payout_plans") or {}).get("name") or DEFAULT_PLAN_NAME


def _amount(value: object) -> float:
    return float(value or 0)


def payout_event(payout: dict) -> dict:
    name, plan = user_name(payout), plan_name(payout)
    event_type, title = PAYOUT_STATUS_EVENTS.get(payout.get("status"), ("payout_created", "Payout Created"))
    return {
        "id": payout["id"],
        "type": event_type,
        "date": payout["scheduled_date"],
        "title": title,
        "description": f"{name} - {plan}",
        "amount": _amount(payout.get("amount")),
        "user_name": name,
        "plan_name": plan,
    }


def created_plan_event(plan: dict) -> dict:
    name = user_name(plan)
    return {
        "id": f"plan-{plan['id']}",
        "type": "payout_created",
        "date": plan["created_at"],
        "title": "Payout Created",
        "description": f'{name} created "{plan.get("name")}"',
        "amount": _amount(plan.get("total_amount")),
        "user_name": name,
        "plan_name": plan.get("name"),
    }


def scheduled_plan_event(plan: dict) -> dict:
    name = user_name(plan)
    return {
        "id": f"scheduled-{plan['id']}",
        "type": "scheduled_payout",
        "date": plan["next_payout_date"],
        "title": "Scheduled Payout",
        "description": f"{name} - {plan.get('name')}",
        "amount": _amount(plan.get("payout_amount")),
        "user_name": name,
        "plan_name": plan.get("name"),
    }


def transaction_event(tx: dict) -> dict | None:
    """Completed deposits and withdrawals, and every payout. Other rows yield None."""
    name = user_name(tx)
    base = {"id": f"tx-{tx['id']}", "date": tx["created_at"], "amount": _amount(tx.get("amount")), "user_name": name}
    completed = tx.get("status") == "completed"

    if tx.get("type") == "deposit" and completed:
        return {**base, "type": "deposit", "title": "Deposit Received", "description": f"{name} deposited funds"}
    if tx.get("type") == "withdrawal" and completed:
        return {**base, "type": "withdrawal", "title": "Withdrawal Completed", "description": f"{name} withdrew funds"}
    if tx.get("type") == "payout":
        plan = plan_name(tx)
        return {
            **base,
            "type": "payout_received" if completed else "payout_failed",
            "title": "Payout Completed" if completed else "Payout Failed",
            "description": f"{name} - {plan}",
            "plan_name": plan,
        }
    return None


def month_window(year: int, month: int) -> tuple[datetime, datetime]:
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def _sort_key(event: dict) -> datetime:
    parsed = datetime.fromisoformat(str(event["date"]).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def _safe_rows(source: str, query: AsyncSelectRequestBuilder) -> list[dict]:
    try:
        result = await query.execute()
    except PostgrestAPIError as exc:
        logger.warning("calendar_source_failed", source=source, error=exc.message)
        return []
    return result.data or []


async def get_calendar_events(supabase: AsyncClient, year: int, month: int) -> list[dict]:
    """All payout-related events in the month, sorted by date."""
    start, end = month_window(year, month)

    payouts, created_plans, scheduled_plans, transactions = await asyncio.gather(
        _safe_rows(
            "automated_payouts",
            supabase.table("automated_payouts")
            .select(
                "id, scheduled_date, execution_date, status, amount, user_id, payout_plan_id, "
                "profiles!automated_payouts_user_id_fkey (first_name, last_name), payout_plans (name)"
            )
            .gte("scheduled_date", start.date().isoformat())
            .lte("scheduled_date", end.date().isoformat())
            .order("scheduled_date"),
        ),
        _safe_rows(
            "payout_plans",
            supabase.table("payout_plans")
            .select("id, name, total_amount, created_at, user_id, profiles!payout_plans_user_id_fkey (first_name, last_name)")
            .gte("created_at", start.isoformat())
            .lte("created_at", end.isoformat())
            .order("created_at"),
        ),
        _safe_rows(
            "scheduled_plans",
            supabase.table("payout_plans")
            .select(
                "id, name, payout_amount, next_payout_date, user_id, "
                "profiles!payout_plans_user_id_fkey (first_name, last_name)"
            )
            .gte("next_payout_date", start.isoformat())
            .lte("next_payout_date", end.isoformat())
            .eq("status", "active")
            .order("next_payout_date"),
        ),
        _safe_rows(
            "transactions",
            supabase.table("transactions")
            .select(
                "id, type, amount, status, created_at, user_id, payout_plan_id, "
                "profiles!transactions_user_id_fkey (first_name, last_name), payout_plans (name)"
            )
            .gte("created_at", start.isoformat())
            .lte("created_at", end.isoformat())
            .in_("type", ["deposit", "withdrawal", "payout"])
            .order("created_at"),
        ),
    )

    events = [payout_event(row) for row in payouts]
    events += [created_plan_event(row) for row in created_plans]
    events += [scheduled_plan_event(row) for row in scheduled_plans]
    events += [event for row in transactions if (event := transaction_event(row)) is not None]
    return sorted(events, key=_sort_key)
