"""Request schemas for marketing campaigns."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateCampaignRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    subject: str = Field(..., min_length=1, max_length=300)
    html_content: str = Field(..., min_length=1)
    category: str = "promotional"


class SendCampaignRequest(BaseModel):
    """Send now, or schedule when ``scheduled_at`` is set."""

    segment: str = "all"
    scheduled_at: datetime | None = None


class CampaignStats(BaseModel):
    total_campaigns: int
    total_sent: int
    total_delivered: int
    total_opened: int
    avg_open_rate: float
