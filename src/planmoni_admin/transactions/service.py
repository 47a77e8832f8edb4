"""Transaction list with inflow/outflow stats."""

from __future__ import annotations

from datetime import date
from typing import Literal

import structlog
from supabase import AsyncClient, PostgrestAPIError

logger = structlog.get_logger()

TransactionType = Literal["all", "deposit", "payout", "withdrawal"]

PAGE_LIMIT = 100

FALLBACK_COLUMNS = (
    "id, type, amount, status, source, destination, payout_plan_id, bank_account_id, "
    "reference, description, created_at, profiles (id, first_name, last_name, email)"
)

PASSTHROUGH_FIELDS = (
    "id",
    "type",
    "amount",
    "status",
    "source",
    "destination",
    "reference",
    "description",
    "payout_plan_id",
    "bank_account_id",
    "created_at",
)


def flow_stats(deposits: float, payouts: float, withdrawals: float) -> dict:
    """Inflows are deposits; outflows are payouts plus withdrawals."""
    outflows = payouts + withdrawals
    return {"inflows": deposits, "outflows": outflows, "net_movement": deposits - outflows}


def from_rpc_row(row: dict) -> dict:
    """Reshape a ``get_all_transactions_data`` row so it matches the table row shape."""
    names = (row.get("user_name") or "").split(" ")
    transaction = {field: row.get(field) for field in PASSTHROUGH_FIELDS}
    transaction["profiles"] = [
        {
            "id": "",
            "first_name": names[0] or None,
            "last_name": names[1] if len(names) > 1 and names[1] else None,
            "email": row.get("user_email"),
        }
    ]
    return transaction


def _first_profile(transaction: dict) -> dict:
    profiles = transaction.get("profiles")
    if isinstance(profiles, list):
        return profiles[0] if profiles else {}
    return profiles or {}


def filter_transactions(
    transactions: list[dict],
    tx_type: TransactionType = "all",
    search: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> list[dict]:
    """Filter rows by type, free-text search and inclusive date range."""
    needle = (search or "").lower()
    result = []
    for tx in transactions:
        if tx_type != "all" and tx.get("type") != tx_type:
            continue
        if needle:
            profile = _first_profile(tx)
            fields = (
                profile.get("first_name"),
                profile.get("last_name"),
                profile.get("email"),
                tx.get("source"),
                tx.get("destination"),
            )
            if not any(needle in (value or "").lower() for value in fields):
                continue
        if start and end:
            day = str(tx.get("created_at") or "")[:10]
            if not start.isoformat() <= day <= end.isoformat():
                continue
        result.append(tx)
    return result


def stats_from_rows(transactions: list[dict]) -> dict:
    """Inflow/outflow totals computed from transaction rows."""
    totals = {"deposit": 0.0, "payout": 0.0, "withdrawal": 0.0}
    for tx in transactions:
        if tx.get("type") in totals:
            totals[tx["type"]] += float(tx.get("amount") or 0)
    return flow_stats(totals["deposit"], totals["payout"], totals["withdrawal"])


async def list_transactions(
    supabase: AsyncClient,
    tx_type: TransactionType = "all",
    search: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Filtered transactions with flow stats for the same window."""
    try:
        result = await supabase.rpc(
            "get_all_transactions_data",
            {
                "search_query": search or None,
                "transaction_type": None if tx_type == "all" else tx_type,
                "start_date": start.isoformat() if start else None,
                "end_date": end.isoformat() if end else None,
                "limit_count": PAGE_LIMIT,
                "offset_count": 0,
            },
        ).execute()
    except PostgrestAPIError as exc:
        logger.warning("transactions_rpc_failed", error=exc.message)
        return await _list_from_table(supabase, tx_type, search, start, end)

    return {
        "transactions": [from_rpc_row(row) for row in result.data or []],
        "stats": await _stats_from_rpc(supabase, start, end),
    }


async def _stats_from_rpc(supabase: AsyncClient, start: date | None, end: date | None) -> dict:
    try:
        result = await supabase.rpc(
            "get_transaction_stats",
            {
                "start_date": start.isoformat() if start else None,
                "end_date": end.isoformat() if end else None,
            },
        ).execute()
    except PostgrestAPIError as exc:
        logger.warning("transaction_stats_rpc_failed", error=exc.message)
        return flow_stats(0, 0, 0)

    if not result.data:
        return flow_stats(0, 0, 0)
    row = result.data[0]
    return flow_stats(
        float(row.get("total_deposits") or 0),
        float(row.get("total_payouts") or 0),
        float(row.get("total_withdrawals") or 0),
    )


async def _list_from_table(
    supabase: AsyncClient,
    tx_type: TransactionType,
    search: str | None,
    start: date | None,
    end: date | None,
) -> dict:
    result = await supabase.table("transactions").select(FALLBACK_COLUMNS).order("created_at", desc=True).execute()
    filtered = filter_transactions(result.data or [], tx_type, search, start, end)
    return {"transactions": filtered, "stats": stats_from_rows(filtered)}
