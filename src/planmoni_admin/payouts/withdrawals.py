"""Emergency withdrawal requests."""

from __future__ import annotations

from supabase import AsyncClient

WITHDRAWAL_COLUMNS = (
    "*, profiles:user_id (first_name, last_name, email), "
    "payout_plans:payout_plan_id (plan_name, total_amount), "
    "payout_accounts:payout_account_id (account_name, account_number, bank_name)"
)

PENDING_STATUSES = frozenset({"pending", "processing"})
COMPLETED_STATUSES = frozenset({"completed", "success", "transferred"})
FAILED_STATUSES = frozenset({"failed", "cancelled", "rejected"})


def withdrawal_stats(withdrawals: list[dict]) -> dict:
    """Counts per status group; amounts and fees are summed over completed requests only."""
    completed = [w for w in withdrawals if w.get("status") in COMPLETED_STATUSES]
    return {
        "total": len(withdrawals),
        "pending": sum(1 for w in withdrawals if w.get("status") in PENDING_STATUSES),
        "completed": len(completed),
        "failed": sum(1 for w in withdrawals if w.get("status") in FAILED_STATUSES),
        "total_amount": sum(float(w.get("withdrawal_amount") or 0) for w in completed),
        "total_fees": sum(float(w.get("fee_amount") or 0) for w in completed),
    }


async def list_emergency_withdrawals(
    supabase: AsyncClient,
    status: str | None = None,
    withdrawal_type: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    search: str | None = None,
) -> dict:
    query = supabase.table("emergency_withdrawals").select(WITHDRAWAL_COLUMNS).order("requested_at", desc=True)
    if status:
        query = query.eq("status", status)
    if withdrawal_type:
        query = query.eq("withdrawal_type", withdrawal_type)
    if date_from:
        query = query.gte("requested_at", date_from)
    if date_to:
        query = query.lte("requested_at", date_to)
    if search:
        query = query.or_(f"reference.ilike.%{search}%,transfer_code.ilike.%{search}%")

    result = await query.execute()
    withdrawals = result.data or []
    return {"withdrawals": withdrawals, "stats": withdrawal_stats(withdrawals)}
