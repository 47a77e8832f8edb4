"""Request schemas for push notifications."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class SendNotificationRequest(BaseModel):
    """A push notification to broadcast, target individual users, or a segment."""

    title: str = Field(..., max_length=200)
    body: str = Field(..., max_length=2000)
    data: dict[str, Any] = Field(default_factory=dict)
    target_type: Literal["all", "individual", "segment"] = "all"
    target_user_ids: list[str] = Field(default_factory=list)
    target_segment_id: str | None = None

    @field_validator("title", "body")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            msg = "Please fill in title and message"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def segment_required(self) -> SendNotificationRequest:
        if self.target_type == "segment" and not self.target_segment_id:
            msg = "Please select a segment"
            raise ValueError(msg)
        return self


class NotificationStats(BaseModel):
    total_sent: int
    total_delivered: int
    total_failed: int
    total_pending: int
    delivery_rate: int
