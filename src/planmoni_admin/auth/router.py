"""Authentication router: all /api/v1/auth/* endpoints."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from supabase import AsyncClient

from planmoni_admin.auth.dependencies import CurrentAdmin, get_current_admin, require_super_admin
from planmoni_admin.auth.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    MeResponse,
    RefreshRequest,
    SignupRequest,
    TokenResponse,
    TwoFactorCodeRequest,
    TwoFactorSetupResponse,
    TwoFactorStatus,
)
from planmoni_admin.auth.service import (
    TwoFactorRequiredError,
    authenticate_admin,
    disable_two_factor,
    enable_two_factor,
    get_two_factor_settings,
    invalidate_session,
    list_active_sessions,
    refresh_admin_session,
    register_admin_account,
    send_password_reset,
    sign_out_admin,
    start_two_factor_setup,
)
from planmoni_admin.dependencies import get_optional_redis
from planmoni_admin.supabase_client import get_supabase

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


# ---------------------------------------------------------------------------
# Sign-in
# ---------------------------------------------------------------------------


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    supabase: AsyncClient = Depends(get_supabase),
    redis: Redis | None = Depends(get_optional_redis),
) -> Any:  # noqa: ANN401
    """Login with email + password (and a TOTP or backup code when 2FA is on)."""
    try:
        return await authenticate_admin(supabase, redis, body.email, body.password, body.totp_code)
    except TwoFactorRequiredError as e:
        return JSONResponse(status_code=401, content={"detail": str(e), "two_factor_required": True})
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except PermissionError as e:
        detail = str(e)
        if "locked" in detail.lower():
            raise HTTPException(status_code=429, detail=detail) from e
        raise HTTPException(status_code=403, detail=detail) from e


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest) -> Any:  # noqa: ANN401
    """Exchange a refresh token for a new session."""
    try:
        return await refresh_admin_session(body.refresh_token)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e


@router.post("/logout")
async def logout(
    admin: CurrentAdmin = Depends(get_current_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    """Sign out. Always succeeds."""
    await sign_out_admin(supabase, admin.access_token)
    return {"status": "logged_out"}


@router.post("/signup", status_code=201)
async def signup(body: SignupRequest) -> dict[str, str]:
    """Create an auth account. An admin role must be granted before it can log in."""
    try:
        await register_admin_account(body.email, body.password, body.first_name, body.last_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"status": "account_created"}


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordRequest) -> dict[str, str]:
    """Request password reset email. Always returns 200."""
    await send_password_reset(body.email)
    return {"status": "If that email exists, a reset link has been sent."}


@router.get("/me", response_model=MeResponse)
async def me(admin: CurrentAdmin = Depends(get_current_admin)) -> MeResponse:
    return MeResponse(
        id=admin.id,
        email=admin.email,
        is_super_admin=admin.is_super_admin,
        roles=admin.roles,
        permissions=admin.permissions,
    )


# ---------------------------------------------------------------------------
# Two-factor
# ---------------------------------------------------------------------------


@router.get("/2fa/status", response_model=TwoFactorStatus)
async def two_factor_status(
    admin: CurrentAdmin = Depends(get_current_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> TwoFactorStatus:
    row = await get_two_factor_settings(supabase, admin.id)
    if not row:
        return TwoFactorStatus(is_enabled=False)
    return TwoFactorStatus(
        is_enabled=bool(row.get("is_enabled")),
        backup_codes_remaining=len(row.get("backup_codes") or []),
    )


@router.post("/2fa/setup", response_model=TwoFactorSetupResponse)
async def two_factor_setup(
    admin: CurrentAdmin = Depends(get_current_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> Any:  # noqa: ANN401
    """Start enrolment: returns the secret, provisioning URI and backup codes."""
    return await start_two_factor_setup(supabase, admin.id, admin.email or "")


@router.post("/2fa/enable")
async def two_factor_enable(
    body: TwoFactorCodeRequest,
    admin: CurrentAdmin = Depends(get_current_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    try:
        await enable_two_factor(supabase, admin.id, body.code)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"status": "two_factor_enabled"}


@router.post("/2fa/disable")
async def two_factor_disable(
    admin: CurrentAdmin = Depends(get_current_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    await disable_two_factor(supabase, admin.id)
    return {"status": "two_factor_disabled"}


# ---------------------------------------------------------------------------
# Admin sessions
# ---------------------------------------------------------------------------


@router.get("/sessions")
async def sessions(
    _admin: CurrentAdmin = Depends(require_super_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> list[dict]:
    """Active admin sessions, most recent first."""
    return await list_active_sessions(supabase)


@router.delete("/sessions/{session_id}")
async def delete_session(
    session_id: str,
    admin: CurrentAdmin = Depends(require_super_admin),
    supabase: AsyncClient = Depends(get_supabase),
) -> dict[str, str]:
    """Force-logout another admin session."""
    await invalidate_session(supabase, session_id)
    logger.info("admin_session_revoked", session_id=session_id, revoked_by=admin.id)
    return {"status": "session_invalidated"}
