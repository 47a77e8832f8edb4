"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from planmoni_admin.activity.router import router as activity_router
from planmoni_admin.analytics.router import router as analytics_router
from planmoni_admin.app_versions.router import router as app_versions_router
from planmoni_admin.audit.router import router as audit_router
from planmoni_admin.auth.router import router as auth_router
from planmoni_admin.banners.router import router as banners_router
from planmoni_admin.config import get_settings
from planmoni_admin.dashboard.router import router as dashboard_router
from planmoni_admin.edge_functions import close_edge_functions, init_edge_functions
from planmoni_admin.health.router import router as health_router
from planmoni_admin.kyc.router import router as kyc_router
from planmoni_admin.marketing.router import router as marketing_router
from planmoni_admin.middleware import setup_middleware
from planmoni_admin.notifications.router import router as notifications_router
from planmoni_admin.payouts.router import router as payouts_router
from planmoni_admin.redis_client import close_redis, init_redis
from planmoni_admin.refresh.router import router as refresh_router
from planmoni_admin.super_admin.router import router as super_admin_router
from planmoni_admin.supabase_client import close_supabase, init_supabase
from planmoni_admin.transactions.router import router as transactions_router
from planmoni_admin.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_supabase(settings.supabase_url, settings.supabase_service_role_key)
    await init_redis(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout_seconds,
    )
    await init_edge_functions()
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    await close_edge_functions()
    await close_redis()
    await close_supabase()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Planmoni Admin API",
        description="Admin API for the Planmoni dashboard, backed by Supabase",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.include_router(analytics_router)
    app.include_router(users_router)
    app.include_router(transactions_router)
    app.include_router(kyc_router)
    app.include_router(payouts_router)
    app.include_router(activity_router)
    app.include_router(audit_router)
    app.include_router(notifications_router)
    app.include_router(marketing_router)
    app.include_router(banners_router)
    app.include_router(app_versions_router)
    app.include_router(super_admin_router)
    app.include_router(refresh_router)

    return app


app = create_app()
