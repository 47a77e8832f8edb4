"""Transaction endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import TRANSACTIONS, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.supabase_client import get_supabase
from planmoni_admin.transactions.service import TransactionType, list_transactions

router = APIRouter(prefix="/api/v1/transactions", tags=["Transactions"])


@router.get("")
async def transactions(
    type: TransactionType = Query("all"),  # noqa: A002
    search: str | None = Query(None, max_length=200),
    start: date | None = Query(None),
    end: date | None = Query(None),
    _admin: CurrentAdmin = Depends(require_permission(TRANSACTIONS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """Up to 100 transactions matching the filters, with inflow/outflow totals."""
    return await cached(
        cache_key("transactions", type, search, start, end),
        get_settings().transactions_cache_ttl_seconds,
        lambda: list_transactions(supabase, type, search, start, end),
    )
