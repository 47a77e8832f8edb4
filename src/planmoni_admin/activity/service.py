"""Admin activity feed: audit logs, app events and recent transactions."""

from __future__ import annotations

import asyncio
from datetime import datetime

from supabase import AsyncClient

AUDIT_LIMIT = 100
EVENTS_LIMIT = 100
TRANSACTIONS_LIMIT = 50

WITH_USER = "*, profiles:user_id (first_name, last_name, email)"


def with_user(rows: list[dict]) -> list[dict]:
    """Rename the embedded ``profiles`` object to ``user``."""
    out = []
    for row in rows:
        item = dict(row)
        item["user"] = item.pop("profiles", None)
        out.append(item)
    return out


def active_user_count(audit_logs: list[dict], events: list[dict]) -> int:
    return len({row.get("user_id") for row in [*audit_logs, *events]})


def local_midnight(now: datetime | None = None) -> datetime:
    now = now or datetime.now().astimezone()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


async def get_activity(supabase: AsyncClient, date_from: datetime | None = None, date_to: datetime | None = None) -> dict:
    def recent(table: str, limit: int):  # noqa: ANN202
        query = supabase.table(table).select(WITH_USER).order("created_at", desc=True).limit(limit)
        if date_from and date_to:
            query = query.gte("created_at", date_from.isoformat()).lte("created_at", date_to.isoformat())
        return query.execute()

    audit, events, transactions, today = await asyncio.gather(
        recent("audit_logs", AUDIT_LIMIT),
        recent("events", EVENTS_LIMIT),
        recent("transactions", TRANSACTIONS_LIMIT),
        supabase.table("audit_logs")
        .select("id", count="exact", head=True)
        .gte("created_at", local_midnight().isoformat())
        .execute(),
    )

    audit_logs = with_user(audit.data or [])
    event_rows = with_user(events.data or [])
    return {
        "audit_logs": audit_logs,
        "events": event_rows,
        "recent_transactions": with_user(transactions.data or []),
        "stats": {
            "total_actions": len(audit_logs),
            "total_events": len(event_rows),
            "active_users": active_user_count(audit_logs, event_rows),
            "today_actions": today.count or 0,
        },
    }
