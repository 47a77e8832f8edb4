"""Compliance audit logs from the KYC and SafeHaven integrations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

import structlog
from supabase import AsyncClient, PostgrestAPIError

logger = structlog.get_logger()

LogType = Literal["all", "kyc", "safehaven"]

SOURCE_LIMIT = 100
WITH_PROFILE = "*, profiles:user_id (first_name, last_name, email)"

# log type -> (table, columns searched with ilike)
SOURCES = {
    "kyc": ("kyc_audit_logs", ("operation_type", "verification_type", "result_message")),
    "safehaven": ("safehaven_audit_logs", ("operation_type", "safehaven_endpoint")),
}


@dataclass
class AuditLogFilters:
    log_type: LogType = "all"
    status: str | None = None
    operation_type: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    search: str | None = None


def _created_at(entry: dict) -> datetime:
    raw = str(entry["data"].get("created_at") or "")
    try:
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def merge_logs(batches: dict[str, list[dict]]) -> list[dict]:
    """Tag each row with its source and sort everything newest first."""
    merged = [{"type": log_type, "data": row} for log_type, rows in batches.items() for row in rows]
    return sorted(merged, key=_created_at, reverse=True)


async def _fetch_source(supabase: AsyncClient, log_type: str, filters: AuditLogFilters) -> list[dict]:
    table, search_columns = SOURCES[log_type]
    query = supabase.table(table).select(WITH_PROFILE).order("created_at", desc=True).limit(SOURCE_LIMIT)
    if filters.status:
        query = query.eq("status", filters.status)
    if filters.operation_type:
        query = query.eq("operation_type", filters.operation_type)
    if filters.date_from:
        query = query.gte("created_at", filters.date_from)
    if filters.date_to:
        query = query.lte("created_at", filters.date_to)
    if filters.search:
        query = query.or_(",".join(f"{column}.ilike.%{filters.search}%" for column in search_columns))

    try:
        result = await query.execute()
    except PostgrestAPIError as exc:
        logger.warning("audit_log_source_failed", source=table, error=exc.message)
        return []
    return result.data or []


async def list_audit_logs(supabase: AsyncClient, filters: AuditLogFilters) -> list[dict]:
    selected = list(SOURCES) if filters.log_type == "all" else [filters.log_type]
    batches = {log_type: await _fetch_source(supabase, log_type, filters) for log_type in selected}
    return merge_logs(batches)


async def audit_trail_summary(
    supabase: AsyncClient,
    user_id: str | None = None,
    operation_type: str | None = None,
    verification_type: str | None = None,
) -> list[dict]:
    """Per-user operation totals from ``kyc_audit_trail_summary``, busiest first."""
    query = supabase.table("kyc_audit_trail_summary").select(WITH_PROFILE).order("total_operations", desc=True)
    if user_id:
        query = query.eq("user_id", user_id)
    if operation_type:
        query = query.eq("operation_type", operation_type)
    if verification_type:
        query = query.eq("verification_type", verification_type)
    result = await query.execute()
    return result.data or []
