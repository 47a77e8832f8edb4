"""Role management schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RoleRequest(BaseModel):
    """Role fields plus the full list of permission ids it should grant."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    level: int = Field(1, ge=0, le=100)
    color: str = Field("#6B7280", max_length=20)
    permissions: list[str] = Field(default_factory=list)


class AssignRolesRequest(BaseModel):
    role_ids: list[str] = Field(..., min_length=1)
