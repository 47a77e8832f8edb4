"""KYC records merged with onboarding progress."""

from __future__ import annotations

import asyncio
from typing import Literal

from supabase import AsyncClient

KycStatus = Literal["all", "approved", "pending"]

SEARCH_FIELDS = ("first_name", "last_name", "email", "phone_number", "bvn", "nin")


def merge_progress(records: list[dict], progress: list[dict]) -> list[dict]:
    """Attach the profile as ``user`` and the matching ``kyc_progress`` row to each record."""
    by_user = {row.get("user_id"): row for row in progress}
    merged = []
    for record in records:
        item = dict(record)
        item["user"] = item.pop("profiles", None)
        item["kyc_progress"] = by_user.get(record.get("user_id"))
        merged.append(item)
    return merged


def matches_search(item: dict, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    values = [item.get(field) for field in SEARCH_FIELDS]
    values.append((item.get("user") or {}).get("email"))
    return any(needle in str(value).lower() for value in values if value)


def kyc_stats(items: list[dict]) -> dict:
    """Counts by approval state and completed onboarding."""
    return {
        "total": len(items),
        "approved": sum(1 for item in items if item.get("approved") is True),
        "pending": sum(1 for item in items if item.get("approved") is False),
        "rejected": 0,
        "completed": sum(1 for item in items if (item.get("kyc_progress") or {}).get("overall_completed") is True),
    }


async def list_kyc(supabase: AsyncClient, search: str | None = None, status: KycStatus = "all") -> dict:
    """KYC submissions, newest first, with stats over the filtered set."""
    query = (
        supabase.table("kyc_data")
        .select("*, profiles!kyc_data_user_id_fkey (email)")
        .order("created_at", desc=True)
    )
    if status == "approved":
        query = query.eq("approved", True)
    elif status == "pending":
        query = query.eq("approved", False)

    records, progress = await asyncio.gather(
        query.execute(),
        supabase.table("kyc_progress").select("*").execute(),
    )

    items = [item for item in merge_progress(records.data or [], progress.data or []) if matches_search(item, search)]
    return {"kyc_data": items, "stats": kyc_stats(items)}
