"""Supabase async client lifecycle.

The shared client uses the service-role key and never signs in, so its
PostgREST headers stay on the service role. Password sign-in, sign-up and
token refresh go through a short-lived anon-key client instead, as do RPCs
that read ``auth.uid()``.
"""

from supabase import AsyncClient, acreate_client

from planmoni_admin.config import get_settings

_client: AsyncClient | None = None


async def init_supabase(url: str, key: str) -> None:
    """Create the shared service-role Supabase client."""
    global _client  # noqa: PLW0603
    _client = await acreate_client(url, key)


async def close_supabase() -> None:
    """Drop the shared client."""
    global _client  # noqa: PLW0603
    _client = None


def get_supabase() -> AsyncClient:
    """Get the Supabase client (FastAPI dependency)."""
    if _client is None:
        msg = "Supabase not initialized. Call init_supabase() first."
        raise RuntimeError(msg)
    return _client


async def create_auth_client() -> AsyncClient:
    """Create a throwaway anon-key client for end-user auth calls."""
    settings = get_settings()
    return await acreate_client(settings.supabase_url, settings.supabase_anon_key)


async def create_user_client(access_token: str) -> AsyncClient:
    """Anon-key client whose PostgREST calls run as the token's user, so ``auth.uid()`` resolves."""
    client = await create_auth_client()
    client.postgrest.auth(access_token)
    return client
