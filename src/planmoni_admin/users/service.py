"""User management queries."""

from __future__ import annotations

import asyncio

import structlog
from supabase import AsyncClient, PostgrestAPIError

logger = structlog.get_logger()

FALLBACK_COLUMNS = "id, first_name, last_name, email, created_at, is_admin, wallets (balance, available_balance, locked_balance)"


def flatten_profile(profile: dict) -> dict:
    """Map a ``profiles`` row with nested wallets to the list row shape."""
    wallets = profile.get("wallets") or []
    if isinstance(wallets, dict):
        wallets = [wallets]
    wallet = wallets[0] if wallets else {}
    return {
        "id": profile.get("id"),
        "first_name": profile.get("first_name"),
        "last_name": profile.get("last_name"),
        "email": profile.get("email"),
        "created_at": profile.get("created_at"),
        "is_admin": bool(profile.get("is_admin")),
        "balance": wallet.get("balance") or wallet.get("available_balance") or 0,
        "locked_balance": wallet.get("locked_balance") or 0,
        "total_deposits": 0,
        "total_payouts": 0,
        "active_plans": 0,
    }


def matches_search(user: dict, search: str | None) -> bool:
    """Case-insensitive match on first name, last name, full name or email."""
    if not search:
        return True
    needle = search.strip().lower()
    first = (user.get("first_name") or "").lower()
    last = (user.get("last_name") or "").lower()
    haystack = (first, last, f"{first} {last}", (user.get("email") or "").lower())
    return any(needle in value for value in haystack)


async def list_users(supabase: AsyncClient, search: str | None = None) -> dict:
    """All users with management stats. Stats are null when unavailable."""
    try:
        users_result = await supabase.rpc("get_all_users_info", {}).execute()
    except PostgrestAPIError as exc:
        logger.warning("users_rpc_failed", error=exc.message)
        users = await _list_users_from_profiles(supabase)
        stats = None
    else:
        users = users_result.data or []
        stats = await _user_management_stats(supabase)

    return {"users": [u for u in users if matches_search(u, search)], "stats": stats}


async def _user_management_stats(supabase: AsyncClient) -> dict | None:
    try:
        result = await supabase.rpc("get_user_management_data", {}).execute()
    except PostgrestAPIError as exc:
        logger.warning("user_stats_rpc_failed", error=exc.message)
        return None
    return (result.data or [None])[0]


async def _list_users_from_profiles(supabase: AsyncClient) -> list[dict]:
    result = await supabase.table("profiles").select(FALLBACK_COLUMNS).order("created_at", desc=True).execute()
    return [flatten_profile(row) for row in result.data or []]


async def get_user_details(supabase: AsyncClient, user_id: str) -> dict:
    """
    Profile, wallet, recent transactions, payout plans and bank accounts of one user.

    Raises:
        LookupError: If the user does not exist.
    """
    info_result, accounts = await asyncio.gather(
        supabase.rpc("get_user_info", {"target_user_id": user_id}).execute(),
        _bank_accounts(supabase, user_id),
    )
    if not info_result.data:
        msg = "User not found"
        raise LookupError(msg)

    info = info_result.data[0]
    return {
        "user": {
            "id": info.get("id"),
            "first_name": info.get("first_name"),
            "last_name": info.get("last_name"),
            "email": info.get("email"),
            "created_at": info.get("date_joined"),
            "is_admin": bool(info.get("is_admin")),
            "wallets": [
                {
                    "balance": info.get("available_balance") or 0,
                    "locked_balance": info.get("locked_balance") or 0,
                }
            ],
        },
        "transactions": info.get("recent_transactions") or [],
        "payout_plans": info.get("payout_plans") or [],
        "bank_accounts": accounts,
    }


async def _bank_accounts(supabase: AsyncClient, user_id: str) -> list[dict]:
    try:
        result = (
            await supabase.table("bank_accounts")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
    except PostgrestAPIError as exc:
        logger.warning("bank_accounts_fetch_failed", user_id=user_id, error=exc.message)
        return []
    return result.data or []
