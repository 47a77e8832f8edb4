"""App version schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class AppVersionRequest(BaseModel):
    """Minimum mobile app versions and the update prompt shown to older clients."""

    android_version: str = Field(..., min_length=1, max_length=32)
    ios_version: str = Field(..., min_length=1, max_length=32)
    android_build: int = Field(..., ge=0)
    ios_build: int = Field(..., ge=0)
    android_update_url: str | None = None
    ios_update_url: str | None = None
    update_message: str | None = None
    force_update: bool = False
    is_active: bool = False

    @field_validator("android_update_url", "ios_update_url", "update_message")
    @classmethod
    def empty_to_none(cls, v: str | None) -> str | None:
        return v or None
