"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator


class LoginRequest(BaseModel):
    """Login with email + password, plus a 2FA code when enabled."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    totp_code: str | None = Field(None, max_length=16)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class ForgotPasswordRequest(BaseModel):
    """Request a password reset email."""

    email: EmailStr


class RefreshRequest(BaseModel):
    refresh_token: str


class AdminProfile(BaseModel):
    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class TokenResponse(BaseModel):
    """Session tokens issued by Supabase Auth."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    user: AdminProfile


class MeResponse(BaseModel):
    id: str
    email: str | None = None
    is_super_admin: bool
    roles: list[dict[str, Any]]
    permissions: list[dict[str, Any]]


class TwoFactorStatus(BaseModel):
    is_enabled: bool
    backup_codes_remaining: int = 0


class TwoFactorSetupResponse(BaseModel):
    """Secret and backup codes shown once while enrolling an authenticator app."""

    secret: str
    otpauth_url: str
    backup_codes: list[str]


class TwoFactorCodeRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")
