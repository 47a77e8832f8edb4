"""Application settings via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables with PLANMONI_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="PLANMONI_",
        env_file=".env",
        case_sensitive=False,
    )

    # --- Core ---
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_origin_regex: str | None = None
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60
    log_level: str = "INFO"
    log_format: str = "json"
    quiet_loggers: list[str] = ["httpx", "httpcore", "hpack"]
    slow_request_ms: int = 1500

    # --- Redis ---
    redis_url: str = "redis://localhost:6379/0"
    redis_max_connections: int = 20
    redis_socket_timeout_seconds: float = 5.0

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"
    supabase_jwt_leeway_seconds: int = 10
    edge_function_timeout_seconds: float = 30.0

    # --- Admin auth ---
    admin_role_names: list[str] = ["Super Admin", "Admin", "Moderator"]
    account_lockout_threshold: int = 10
    account_lockout_duration_minutes: int = 15
    password_reset_redirect_url: str = "http://localhost:5173/reset-password"

    # --- Two-factor ---
    totp_issuer: str = "Planmoni Admin"
    totp_valid_window: int = 1
    backup_code_count: int = 8

    # --- Storage ---
    banner_bucket: str = "banners"

    # --- Response cache TTLs (seconds) ---
    dashboard_cache_ttl_seconds: int = 120
    analytics_cache_ttl_seconds: int = 300
    users_cache_ttl_seconds: int = 180
    transactions_cache_ttl_seconds: int = 60
    super_admin_cache_ttl_seconds: int = 300
    banners_cache_ttl_seconds: int = 300
    short_cache_ttl_seconds: int = 30


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
