"""Compliance audit log endpoints."""

from fastapi import APIRouter, Depends, Query
from supabase import AsyncClient

from planmoni_admin.audit.service import AuditLogFilters, LogType, audit_trail_summary, list_audit_logs
from planmoni_admin.auth.dependencies import CurrentAdmin, require_permission
from planmoni_admin.auth.permissions import AUDIT_LOGS, VIEW
from planmoni_admin.cache import cache_key, cached
from planmoni_admin.config import get_settings
from planmoni_admin.supabase_client import get_supabase

router = APIRouter(prefix="/api/v1/audit-logs", tags=["Audit Logs"])


@router.get("")
async def audit_logs(
    log_type: LogType = Query("all"),
    status: str | None = Query(None),
    operation_type: str | None = Query(None),
    date_from: str | None = Query(None),
    date_to: str | None = Query(None),
    search: str | None = Query(None, max_length=200),
    _admin: CurrentAdmin = Depends(require_permission(AUDIT_LOGS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    """KYC and SafeHaven audit logs merged newest first."""
    filters = AuditLogFilters(log_type, status, operation_type, date_from, date_to, search)
    return await cached(
        cache_key("audit-logs", log_type, status, operation_type, date_from, date_to, search),
        get_settings().short_cache_ttl_seconds,
        lambda: list_audit_logs(supabase, filters),
    )


@router.get("/summary")
async def summary(
    user_id: str | None = Query(None),
    operation_type: str | None = Query(None),
    verification_type: str | None = Query(None),
    _admin: CurrentAdmin = Depends(require_permission(AUDIT_LOGS, VIEW)),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    return await cached(
        cache_key("audit-logs", "summary", user_id, operation_type, verification_type),
        get_settings().short_cache_ttl_seconds * 2,
        lambda: audit_trail_summary(supabase, user_id, operation_type, verification_type),
    )
