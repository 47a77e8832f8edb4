"""Payout plans list and stats."""

from __future__ import annotations

import asyncio
import math

from supabase import AsyncClient

PLAN_COLUMNS = "*, profiles!payout_plans_user_id_fkey (email, first_name, last_name)"

# get_payout_plans_stats column -> response key
STATS_FIELDS = {
    "total": "total",
    "active": "active",
    "completed": "completed",
    "cancelled": "cancelled",
    "daily": "daily",
    "specific_days": "specificDays",
    "weekly": "weekly",
    "bi_weekly": "biWeekly",
    "monthly": "monthly",
    "month_end": "monthEnd",
    "quarterly": "quarterly",
    "bi_annually": "biAnnually",
    "annually": "annually",
    "custom": "custom",
    "total_amount": "totalAmount",
    "total_payout_amount": "totalPayoutAmount",
    "daily_amount": "dailyAmount",
    "specific_days_amount": "specificDaysAmount",
    "weekly_amount": "weeklyAmount",
    "bi_weekly_amount": "biWeeklyAmount",
    "monthly_amount": "monthlyAmount",
    "month_end_amount": "monthEndAmount",
    "quarterly_amount": "quarterlyAmount",
    "bi_annually_amount": "biAnnuallyAmount",
    "annually_amount": "annuallyAmount",
    "custom_amount": "customAmount",
    "total_locked_balance": "totalLockedBalance",
    "total_emergency_withdrawals": "totalEmergencyWithdrawals",
}


def map_plan_stats(row: dict | None) -> dict[str, float]:
    """Rename the stats row to camelCase keys, coercing to numbers with 0 defaults."""
    row = row or {}
    return {key: float(row.get(column) or 0) for column, key in STATS_FIELDS.items()}


def page_range(page: int, page_size: int) -> tuple[int, int]:
    """Inclusive row range for a 1-based page."""
    return (page - 1) * page_size, page * page_size - 1


async def list_payout_plans(
    supabase: AsyncClient,
    search: str | None = None,
    status: str | None = None,
    frequency: str | None = None,
    page: int = 1,
    page_size: int = 50,
) -> dict:
    """One page of payout plans with owner profile, plus plan-wide stats."""
    start, end = page_range(page, page_size)
    query = (
        supabase.table("payout_plans")
        .select(PLAN_COLUMNS, count="exact")
        .order("created_at", desc=True)
        .range(start, end)
    )
    if status and status != "all":
        query = query.eq("status", status)
    if frequency and frequency != "all":
        query = query.eq("frequency", frequency)
    if search:
        query = query.or_(f"name.ilike.%{search}%,description.ilike.%{search}%")

    stats_result, plans_result = await asyncio.gather(
        supabase.rpc("get_payout_plans_stats", {}).execute(),
        query.execute(),
    )

    stats_rows = stats_result.data if isinstance(stats_result.data, list) else []
    plans = []
    for row in plans_result.data or []:
        plan = dict(row)
        plan["user"] = plan.pop("profiles", None)
        plans.append(plan)

    total_count = plans_result.count or 0
    return {
        "plans": plans,
        "stats": map_plan_stats(stats_rows[0] if stats_rows else None),
        "total_count": total_count,
        "total_pages": math.ceil(total_count / page_size),
    }
