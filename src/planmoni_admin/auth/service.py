"""Admin authentication against Supabase Auth.

Sign-in is password based. A user may only enter the dashboard when their
profile carries the admin flag or they hold an active admin role. Admins
with two-factor enabled must also present a TOTP or backup code.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from redis.asyncio import Redis
from supabase import AsyncClient, AuthError, PostgrestAPIError

from planmoni_admin.auth import totp
from planmoni_admin.auth.permissions import is_dashboard_admin
from planmoni_admin.config import get_settings
from planmoni_admin.supabase_client import create_auth_client

logger = structlog.get_logger()

ACCESS_DENIED_MESSAGE = "Access denied. This dashboard is restricted to administrators only."


class TwoFactorRequiredError(Exception):
    """Credentials were valid but a second factor is needed."""


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_admin(
    supabase: AsyncClient,
    redis: Redis | None,
    email: str,
    password: str,
    totp_code: str | None = None,
) -> dict[str, Any]:
    """
    Sign an admin in and return the session tokens.

    Raises:
        ValueError: If credentials or the second factor are invalid.
        PermissionError: If the account is locked or is not an admin.
        TwoFactorRequiredError: If 2FA is enabled and no code was given.
    """
    email = email.strip().lower()

    if redis is not None and await check_account_lockout(redis, email):
        msg = "Account temporarily locked. Try again later."
        raise PermissionError(msg)

    auth_client = await create_auth_client()
    try:
        response = await auth_client.auth.sign_in_with_password({"email": email, "password": password})
    except AuthError as e:
        if redis is not None:
            await increment_failed_login(redis, email)
        logger.info("admin_login_failed", email=email, error=e.message)
        raise ValueError(e.message) from e

    if response.user is None or response.session is None:
        msg = "Authentication failed"
        raise ValueError(msg)

    user_id = response.user.id
    if not await is_dashboard_admin(supabase, user_id):
        logger.warning("admin_login_denied", user_id=user_id)
        await _sign_out_quietly(auth_client)
        raise PermissionError(ACCESS_DENIED_MESSAGE)

    settings_row = await get_two_factor_settings(supabase, user_id)
    if settings_row and settings_row.get("is_enabled"):
        if not totp_code:
            await _sign_out_quietly(auth_client)
            raise TwoFactorRequiredError("Two-factor code required")
        if not await verify_second_factor(supabase, settings_row, totp_code):
            if redis is not None:
                await increment_failed_login(redis, email)
            await _sign_out_quietly(auth_client)
            msg = "Invalid verification code"
            raise ValueError(msg)

    if redis is not None:
        await clear_failed_login(redis, email)

    logger.info("admin_login_succeeded", user_id=user_id)
    return _session_payload(response)


def _session_payload(response: Any) -> dict[str, Any]:  # noqa: ANN401
    """Flatten a supabase AuthResponse into the token response shape."""
    session = response.session
    user = response.user
    metadata = user.user_metadata or {}
    return {
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "token_type": "bearer",
        "expires_in": session.expires_in,
        "user": {
            "id": user.id,
            "email": user.email,
            "first_name": metadata.get("first_name"),
            "last_name": metadata.get("last_name"),
        },
    }


async def _sign_out_quietly(auth_client: AsyncClient) -> None:
    try:
        await auth_client.auth.sign_out()
    except AuthError:
        logger.warning("sign_out_failed", exc_info=True)


async def refresh_admin_session(refresh_token: str) -> dict[str, Any]:
    """
    Exchange a refresh token for a new session.

    Raises:
        ValueError: If the refresh token is rejected.
    """
    auth_client = await create_auth_client()
    try:
        response = await auth_client.auth.refresh_session(refresh_token)
    except AuthError as e:
        raise ValueError(e.message) from e
    if response.session is None or response.user is None:
        msg = "Session refresh failed"
        raise ValueError(msg)
    return _session_payload(response)


async def sign_out_admin(supabase: AsyncClient, access_token: str) -> None:
    """Revoke the admin's refresh tokens. Failures are logged, never raised."""
    try:
        await supabase.auth.admin.sign_out(access_token)
    except AuthError:
        logger.warning("admin_sign_out_failed", exc_info=True)


async def register_admin_account(email: str, password: str, first_name: str, last_name: str) -> None:
    """
    Create an auth user with name metadata. Dashboard access still needs an admin role.

    Raises:
        ValueError: If sign-up is rejected.
    """
    auth_client = await create_auth_client()
    try:
        await auth_client.auth.sign_up(
            {
                "email": email.strip().lower(),
                "password": password,
                "options": {"data": {"first_name": first_name, "last_name": last_name}},
            }
        )
    except AuthError as e:
        raise ValueError(e.message) from e


async def send_password_reset(email: str) -> None:
    """Ask Supabase to send a reset email. Errors are logged so callers cannot probe for accounts."""
    settings = get_settings()
    auth_client = await create_auth_client()
    try:
        await auth_client.auth.reset_password_for_email(
            email.strip().lower(),
            {"redirect_to": settings.password_reset_redirect_url},
        )
    except AuthError as e:
        logger.warning("password_reset_failed", error=e.message)


# ---------------------------------------------------------------------------
# Account lockout
# ---------------------------------------------------------------------------


async def check_account_lockout(redis: Redis, email: str) -> bool:
    """Check if the account is locked due to too many failed login attempts."""
    settings = get_settings()
    count_str = await redis.get(f"login_attempts:{email}")
    if count_str is None:
        return False
    return int(count_str) >= settings.account_lockout_threshold


async def increment_failed_login(redis: Redis, email: str) -> int:
    """Increment failed login counter. Returns the new count."""
    settings = get_settings()
    key = f"login_attempts:{email}"
    count = await redis.incr(key)
    if count == 1:
        await redis.expire(key, settings.account_lockout_duration_minutes * 60)
    return int(count)


async def clear_failed_login(redis: Redis, email: str) -> None:
    """Clear the failed login counter after a successful login."""
    await redis.delete(f"login_attempts:{email}")


# ---------------------------------------------------------------------------
# Two-factor
# ---------------------------------------------------------------------------


async def get_two_factor_settings(supabase: AsyncClient, user_id: str) -> dict | None:
    """The admin's ``admin_2fa_settings`` row, if any."""
    result = (
        await supabase.table("admin_2fa_settings")
        .select("*")
        .eq("user_id", user_id)
        .maybe_single()
        .execute()
    )
    if result is None:
        return None
    return result.data or None


async def verify_second_factor(supabase: AsyncClient, settings_row: dict, code: str) -> bool:
    """Accept a TOTP code, or consume a backup code."""
    if totp.verify_code(settings_row["secret"], code):
        return True

    remaining = totp.consume_backup_code(settings_row.get("backup_codes") or [], code)
    if remaining is None:
        return False

    await (
        supabase.table("admin_2fa_settings")
        .update({"backup_codes": remaining, "updated_at": _now_iso()})
        .eq("user_id", settings_row["user_id"])
        .execute()
    )
    logger.info("backup_code_used", user_id=settings_row["user_id"], remaining=len(remaining))
    return True


async def start_two_factor_setup(supabase: AsyncClient, user_id: str, email: str) -> dict[str, Any]:
    """Generate and store a new (disabled) secret with backup codes."""
    secret = totp.generate_secret()
    backup_codes = totp.generate_backup_codes()
    await (
        supabase.table("admin_2fa_settings")
        .upsert(
            {
                "user_id": user_id,
                "secret": secret,
                "is_enabled": False,
                "backup_codes": backup_codes,
                "updated_at": _now_iso(),
            },
            on_conflict="user_id",
        )
        .execute()
    )
    return {
        "secret": secret,
        "otpauth_url": totp.provisioning_uri(secret, email or user_id),
        "backup_codes": backup_codes,
    }


async def enable_two_factor(supabase: AsyncClient, user_id: str, code: str) -> None:
    """
    Turn on 2FA after checking a code against the pending secret.

    Raises:
        LookupError: If setup was never started.
        ValueError: If the code is wrong.
    """
    settings_row = await get_two_factor_settings(supabase, user_id)
    if not settings_row or not settings_row.get("secret"):
        msg = "Two-factor setup has not been started"
        raise LookupError(msg)
    if not totp.verify_code(settings_row["secret"], code):
        msg = "Invalid verification code. Please try again."
        raise ValueError(msg)

    await (
        supabase.table("admin_2fa_settings")
        .update({"is_enabled": True, "updated_at": _now_iso()})
        .eq("user_id", user_id)
        .execute()
    )
    logger.info("two_factor_enabled", user_id=user_id)


async def disable_two_factor(supabase: AsyncClient, user_id: str) -> None:
    """Turn off 2FA for the admin."""
    await (
        supabase.table("admin_2fa_settings")
        .update({"is_enabled": False, "updated_at": _now_iso()})
        .eq("user_id", user_id)
        .execute()
    )
    logger.info("two_factor_disabled", user_id=user_id)


# ---------------------------------------------------------------------------
# Admin sessions
# ---------------------------------------------------------------------------


async def list_active_sessions(supabase: AsyncClient) -> list[dict]:
    """Active admin sessions, most recently used first."""
    result = (
        await supabase.table("admin_sessions")
        .select("*, profiles(first_name, last_name, email)")
        .eq("is_active", True)
        .order("last_active", desc=True)
        .execute()
    )
    return result.data or []


async def invalidate_session(supabase: AsyncClient, session_id: str) -> Any:  # noqa: ANN401
    """Force-logout an admin session."""
    result = await supabase.rpc("invalidate_session", {"p_session_id": session_id}).execute()
    logger.info("admin_session_invalidated", session_id=session_id)
    return result.data


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
