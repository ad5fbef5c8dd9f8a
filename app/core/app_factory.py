"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and
background tasks) to improve testability compared to a monolithic main.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import analytics_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.janitor import RateLimitJanitor
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import get_counter_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run the rate limit janitor for the lifetime of the application."""
    janitor = RateLimitJanitor(
        get_counter_store(),
        interval_seconds=settings.rate_limit.cleanup_interval_seconds,
        retention_ms=settings.rate_limit.retention_ms,
    )
    app.state.rate_limit_janitor = janitor
    await janitor.start()
    try:
        yield
    finally:
        await janitor.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title=settings.app.name,
        description=(
            "Analytics collection backend for the splash portfolio site. Tracks "
            "page visits, clicks and time spent, serves aggregated stats and a "
            "live feed, and protects every analytics route with per-client rate "
            "limits. Clearing data requires X-API-Key."
        ),
        version=settings.app.version,
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.app.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(analytics_router, prefix="/analytics")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
