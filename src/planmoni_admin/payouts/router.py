"""Payout endpoints: plans, automated payout events, calendar and emergency withdrawals."""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import PAYOUTS, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.payouts.calendar_events import get_calendar_events
from planmoni_admin.payouts.events import list_payout_events
from planmoni_admin.payouts.plans import list_payout_plans
from planmoni_admin.payouts.withdrawals import list_emergency_withdrawals
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1", tags=["Payouts"])

_can_view = require_permission(PAYOUTS, VIEW)


@router.get("/payout-plans")
async def payout_plans(
    search: str | None = Query(None, max_length=200),
    status: str | None = Query(None),
    frequency: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    """Paginated payout plans with plan-wide stats."""
    return await cached(
        cache_key("payout-plans", search, status, frequency, page, page_size),
        get_settings().short_cache_ttl_seconds,
        lambda: list_payout_plans(supabase, search, status, frequency, page, page_size),
    )


@router.get("/payout-events")
async def payout_events(
    search: str | None = Query(None, max_length=200),
    status: str | None = Query(None),
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    return await cached(
        cache_key("payout-events", search, status),
        get_settings().short_cache_ttl_seconds,
        lambda: list_payout_events(supabase, search, status),
    )


@router.get("/calendar")
async def calendar(
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    """Payout calendar for a month (defaults to the current month)."""
    today = datetime.now(timezone.utc)
    year = year or today.year
    month = month or today.month
    return await cached(
        cache_key("calendar", year, month),
        get_settings().short_cache_ttl_seconds,
        lambda: get_calendar_events(supabase, year, month),
    )


@router.get("/emergency-withdrawals")
async def emergency_withdrawals(
    status: str | None = Query(None),
    withdrawal_type: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    search: str | None = Query(None, max_length=200),
    _admin: CurrentAdmin = Depends(_can_view),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict:
    return await cached(
        cache_key("emergency-withdrawals", status, withdrawal_type, date_from, date_to, search),
        get_settings().short_cache_ttl_seconds,
        lambda: list_emergency_withdrawals(
            supabase,
            status,
            withdrawal_type,
            date_from.isoformat() if date_from else None,
            date_to.isoformat() if date_to else None,
            search,
        ),
    )
