"""Supabase access token verification.

Supabase Auth signs access tokens with the project's JWT secret (HS256).
``sub`` is the auth user id and doubles as the ``profiles.id`` key. The anon
and service-role API keys are JWTs too, but carry no ``sub`` and a different
``role``, so they are rejected here.
"""

from __future__ import annotations

from typing import Any

import jwt

from planmoni_admin.config import get_settings

_REQUIRED_CLAIMS = ["exp", "aud"]


def verify_access_token(token: str) -> dict[str, Any]:
    """Decode a dashboard user's access token, raising ``jwt.InvalidTokenError`` on any problem."""
    settings = get_settings()
    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.supabase_jwt_audience,
            leeway=settings.supabase_jwt_leeway_seconds,
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.InvalidTokenError("Token has expired") from None

    if not claims.get("sub"):
        raise jwt.InvalidTokenError("Token has no subject")
    role = claims.get("role", "authenticated")
    if role != "authenticated":
        raise jwt.InvalidTokenError(f"Token role {role!r} cannot sign in to the dashboard")

    return claims
