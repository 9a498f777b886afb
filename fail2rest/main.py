"""fail2rest - FastAPI Application Factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fail2rest.api.health import router as health_router
from fail2rest.api.router import build_api_router
from fail2rest.core.config import Settings, get_settings
from fail2rest.core.exceptions import register_exception_handlers
from fail2rest.core.logging import get_logger
from fail2rest.middleware import (
    BodySizeLimitMiddleware,
    RateLimiter,
    RateLimitMiddleware,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    TimeoutMiddleware,
    UnhandledErrorMiddleware,
)
from fail2rest.services import AuthService, Fail2banClient

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    if not app.state.auth_service.has_auth_configured():
        logger.warning(
            "No API keys or users configured; logins will fail until "
            "FAIL2REST_API_KEYS or FAIL2REST_USERS is set"
        )

    yield

    logger.info("Shutting down...")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without explicit settings they are loaded from the environment. All
    services hang off app.state so several apps can coexist in one process.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="REST API for managing fail2ban",
        version=settings.app_version,
        lifespan=lifespan,
        # Schema is only exposed for local development
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.auth_service = AuthService.from_settings(settings)
    app.state.fail2ban_client = Fail2banClient.from_settings(settings)
    app.state.login_rate_limiter = RateLimiter(settings.login_rate_limit)

    register_exception_handlers(app)

    # Starlette applies middleware LIFO: the last added runs first.
    # Resulting order: request ID -> logging -> security headers ->
    # error envelope -> body limit -> login rate limit -> timeout -> routes.
    app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)
    app.add_middleware(
        RateLimitMiddleware,
        limiter=app.state.login_rate_limiter,
        paths=[f"{settings.api_prefix}/auth/login"],
    )
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.max_body_size)
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Include routers
    app.include_router(health_router)  # Health at root level
    app.include_router(build_api_router(settings.api_prefix))

    return app
