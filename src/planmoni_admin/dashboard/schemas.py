"""Response schemas for the dashboard endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class DashboardStats(BaseModel):
    total_users: int
    total_deposits: float
    total_payouts: float
    total_plans: int
    active_users: int
    recent_transactions: list[dict[str, Any]]
    recent_users: list[dict[str, Any]]
    transaction_trends: list[dict[str, Any]]
