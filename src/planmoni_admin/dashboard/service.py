"""Headline dashboard stats.

The ``get_dashboard_stats`` RPC supplies totals and trends. When it is missing
or fails, the same numbers are rebuilt from plain table queries.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import structlog
from supabase import AsyncClient, PostgrestAPIError

logger = structlog.get_logger()

RECENT_LIMIT = 5
ACTIVE_USER_WINDOW_DAYS = 30
TREND_DAYS = 7

RECENT_TRANSACTION_COLUMNS = "id, type, amount, status, created_at, profiles (id, first_name, last_name, email)"
RECENT_USER_COLUMNS = "id, first_name, last_name, email, created_at"


def sum_amounts(rows: list[dict]) -> float:
    """Sum the ``amount`` column, treating missing values as 0."""
    return sum(float(row.get("amount") or 0) for row in rows)


def count_distinct_users(rows: list[dict]) -> int:
    """Number of distinct non-null ``user_id`` values."""
    return len({row["user_id"] for row in rows if row.get("user_id")})


async def get_dashboard_stats(supabase: AsyncClient) -> dict:
    """Totals, recent activity and 7-day trend for the dashboard home page."""
    try:
        return await _stats_from_rpc(supabase)
    except PostgrestAPIError as exc:
        logger.warning("dashboard_rpc_failed", error=exc.message)
        return await _stats_from_tables(supabase)


async def _stats_from_rpc(supabase: AsyncClient) -> dict:
    result = await supabase.rpc("get_dashboard_stats", {}).execute()
    main = (result.data or [{}])[0] or {}

    since = (datetime.now(timezone.utc) - timedelta(days=ACTIVE_USER_WINDOW_DAYS)).isoformat()
    recent_transactions, recent_users, active = await asyncio.gather(
        _recent_transactions(supabase),
        _recent_users(supabase),
        supabase.table("transactions")
        .select("user_id")
        .gte("created_at", since)
        .not_.is_("user_id", "null")
        .execute(),
    )

    return {
        "total_users": main.get("total_users") or 0,
        "total_deposits": main.get("total_deposits") or 0,
        "total_payouts": main.get("total_payouts") or 0,
        "total_plans": main.get("total_plans") or 0,
        "active_users": count_distinct_users(active.data or []),
        "recent_transactions": recent_transactions,
        "recent_users": recent_users,
        "transaction_trends": main.get("transaction_trends") or [],
    }


async def _stats_from_tables(supabase: AsyncClient) -> dict:
    users, deposits, payouts, plans = await asyncio.gather(
        supabase.table("profiles").select("*", count="exact", head=True).execute(),
        supabase.table("transactions").select("amount").eq("type", "deposit").execute(),
        supabase.table("transactions").select("amount").eq("type", "payout").execute(),
        supabase.table("payout_plans").select("*", count="exact", head=True).execute(),
    )

    return {
        "total_users": users.count or 0,
        "total_deposits": sum_amounts(deposits.data or []),
        "total_payouts": sum_amounts(payouts.data or []),
        "total_plans": plans.count or 0,
        "active_users": 0,
        "recent_transactions": await _recent_transactions(supabase),
        "recent_users": await _recent_users(supabase),
        "transaction_trends": await _transaction_trends(supabase),
    }


async def _recent_transactions(supabase: AsyncClient) -> list[dict]:
    result = (
        await supabase.table("transactions")
        .select(RECENT_TRANSACTION_COLUMNS)
        .order("created_at", desc=True)
        .limit(RECENT_LIMIT)
        .execute()
    )
    return result.data or []


async def _recent_users(supabase: AsyncClient) -> list[dict]:
    result = (
        await supabase.table("profiles")
        .select(RECENT_USER_COLUMNS)
        .order("created_at", desc=True)
        .limit(RECENT_LIMIT)
        .execute()
    )
    return result.data or []


async def _transaction_trends(supabase: AsyncClient, now: datetime | None = None) -> list[dict]:
    """Transaction counts for the last 7 days, oldest first. A failing day counts as 0."""
    now = now or datetime.now(timezone.utc)
    trends = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = (now - timedelta(days=offset)).replace(hour=0, minute=0, second=0, microsecond=0)
        end = day + timedelta(days=1) - timedelta(microseconds=1)
        try:
            result = (
                await supabase.table("transactions")
                .select("*", count="exact", head=True)
                .gte("created_at", day.isoformat())
                .lte("created_at", end.isoformat())
                .execute()
            )
            total = result.count or 0
        except PostgrestAPIError as exc:
            logger.warning("dashboard_trend_day_failed", day=day.date().isoformat(), error=exc.message)
            total = 0
        trends.append({"day": day.isoformat(), "total_transactions": total})
    return trends
