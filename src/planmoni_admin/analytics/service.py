"""Growth, volume, payout distribution and retention analytics.

``get_analytics_data`` returns everything in one row. The fallback path
rebuilds the same payload from table queries with the arithmetic below.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone

import structlog
from supabase import AsyncClient, PostgrestAPIError

logger = structlog.get_logger()

MONTHS_OF_HISTORY = 6
DAILY_WINDOW_DAYS = 7

# payout_plans.frequency -> response key
FREQUENCY_KEYS = {
    "daily": "daily",
    "weekly": "weekly",
    "biweekly": "biweekly",
    "specific_days": "specificDays",
    "month_end": "monthEnd",
    "monthly": "monthly",
    "quarterly": "quarterly",
    "bi_annually": "biAnnually",
    "annually": "annually",
    "custom": "custom",
}

EMPTY_GROWTH = {"this_month": 0, "last_month": 0, "percent_change": 0, "monthly_data": []}
EMPTY_RETENTION = {"value": 0, "trend": "up", "percent_change": 0}


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


def percent_change(this_period: float, last_period: float) -> int:
    """Whole-number change from last period; 100 when growing from zero."""
    if last_period == 0:
        return 100 if this_period > 0 else 0
    return round((this_period - last_period) / last_period * 100)


def month_bounds(today: datetime, months_back: int = 0) -> tuple[datetime, datetime]:
    """First and last instant of the month ``months_back`` months before ``today``."""
    index = today.year * 12 + (today.month - 1) - months_back
    start = today.replace(year=index // 12, month=index % 12 + 1, day=1, hour=0, minute=0, second=0, microsecond=0)
    next_index = index + 1
    next_start = start.replace(year=next_index // 12, month=next_index % 12 + 1)
    return start, next_start - timedelta(microseconds=1)


def one_month_ago(today: datetime) -> datetime:
    """Same day last month, clamped to that month's last day."""
    start, end = month_bounds(today, 1)
    return today.replace(year=start.year, month=start.month, day=min(today.day, end.day))


def payout_distribution(plans: list[dict]) -> dict[str, int]:
    """Count plans per known frequency. Unknown frequencies are ignored."""
    counts = Counter(plan.get("frequency") for plan in plans)
    return {key: counts.get(frequency, 0) for frequency, key in FREQUENCY_KEYS.items()}


def retention_rate(transactions: list[dict]) -> float:
    """Percentage of transacting users with at least two transactions."""
    per_user = Counter(tx.get("user_id") for tx in transactions)
    if not per_user:
        return 0
    repeat = sum(1 for count in per_user.values() if count >= 2)
    return repeat / len(per_user) * 100


def daily_amounts(transactions: list[dict], today: datetime, days: int = DAILY_WINDOW_DAYS) -> list[dict]:
    """Deposit and payout sums per day for the last ``days`` days, labelled ``dd/MM``."""
    buckets: dict[str, dict] = {}
    for offset in range(days - 1, -1, -1):
        day = (today - timedelta(days=offset)).date()
        buckets[day.isoformat()] = {"date": day.strftime("%d/%m"), "deposits_amount": 0.0, "payouts_amount": 0.0}

    for tx in transactions:
        bucket = buckets.get(str(tx.get("created_at", ""))[:10])
        if bucket is None:
            continue
        if tx.get("type") == "deposit":
            bucket["deposits_amount"] += float(tx.get("amount") or 0)
        elif tx.get("type") == "payout":
            bucket["payouts_amount"] += float(tx.get("amount") or 0)

    return list(buckets.values())


# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------


async def get_analytics(supabase: AsyncClient) -> dict:
    """Analytics page payload, from the RPC when it returns a row."""
    try:
        result = await supabase.rpc("get_analytics_data", {}).execute()
    except PostgrestAPIError as exc:
        logger.warning("analytics_rpc_failed", error=exc.message)
        return await _analytics_from_tables(supabase)

    if not result.data:
        return await _analytics_from_tables(supabase)

    data = result.data[0]
    return {
        "user_growth": data.get("user_growth") or dict(EMPTY_GROWTH),
        "transaction_volume": data.get("transaction_volume") or dict(EMPTY_GROWTH),
        "payout_distribution": data.get("payout_distribution") or {key: 0 for key in FREQUENCY_KEYS.values()},
        "retention_rate": data.get("retention_rate") or dict(EMPTY_RETENTION),
        "daily_transactions": data.get("daily_transactions") or [],
    }


async def _rows_between(supabase: AsyncClient, table: str, columns: str, start: datetime, end: datetime) -> list[dict]:
    result = (
        await supabase.table(table)
        .select(columns)
        .gte("created_at", start.isoformat())
        .lte("created_at", end.isoformat())
        .execute()
    )
    return result.data or []


async def _analytics_from_tables(supabase: AsyncClient, today: datetime | None = None) -> dict:
    today = today or datetime.now(timezone.utc)

    monthly_users: list[int] = []
    monthly_volume: list[float] = []
    for months_back in range(MONTHS_OF_HISTORY - 1, -1, -1):
        start, end = month_bounds(today, months_back)
        users = await _rows_between(supabase, "profiles", "created_at", start, end)
        txs = await _rows_between(supabase, "transactions", "amount", start, end)
        monthly_users.append(len(users))
        monthly_volume.append(sum(float(t.get("amount") or 0) for t in txs))

    # The last two entries of the six-month history are last month and this month
    users_this, users_last = monthly_users[-1], monthly_users[-2]
    volume_this, volume_last = monthly_volume[-1], monthly_volume[-2]

    plans = await supabase.table("payout_plans").select("frequency").execute()

    completed = (
        await supabase.table("transactions")
        .select("user_id")
        .eq("status", "completed")
        .gte("created_at", one_month_ago(today).isoformat())
        .execute()
    )

    window_start = (today - timedelta(days=DAILY_WINDOW_DAYS - 1)).replace(hour=0, minute=0, second=0, microsecond=0)
    recent = (
        await supabase.table("transactions")
        .select("type, amount, created_at")
        .gte("created_at", window_start.isoformat())
        .in_("type", ["deposit", "payout"])
        .execute()
    )

    rate = retention_rate(completed.data or [])
    return {
        "user_growth": {
            "this_month": users_this,
            "last_month": users_last,
            "percent_change": percent_change(users_this, users_last),
            "monthly_data": monthly_users,
        },
        "transaction_volume": {
            "this_month": volume_this,
            "last_month": volume_last,
            "percent_change": percent_change(volume_this, volume_last),
            "monthly_data": monthly_volume,
        },
        "payout_distribution": payout_distribution(plans.data or []),
        "retention_rate": {"value": rate, "trend": "up" if rate >= 0 else "down", "percent_change": 0},
        "daily_transactions": daily_amounts(recent.data or [], today),
    }
