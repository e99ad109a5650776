"""FastAPI application factory and configuration.

This module provides the application factory function for creating
and configuring the FastAPI application with middleware, routes,
exception handlers and lifecycle handlers.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from clientportal.core.config import get_settings
from clientportal.core.exceptions import AuthError, RateLimitedError
from clientportal.core.logging import (
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)
from clientportal.domain.services.broadcaster import Broadcaster, NullBroadcaster
from clientportal.infrastructure.api.rate_limit import RateLimiter
from clientportal.infrastructure.auth.jwt_service import JWTService
from clientportal.infrastructure.persistence.database import (
    close_database,
    get_db_manager,
    init_database,
)
from clientportal.infrastructure.services.email_service import EmailService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control is yielded to the application during its lifetime.
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info(
        "Starting Client Portal",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    yield

    logger.info("Shutting down Client Portal")
    await app.state.email_service.drain()
    await close_database()
    logger.info("Database connection closed")


def create_app(broadcaster: Broadcaster | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        broadcaster: Real-time channel handed to every request's auth
            service. Defaults to one that drops events.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Client portal authentication and session API",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.broadcaster = broadcaster or NullBroadcaster()
    app.state.jwt_service = JWTService(settings)
    app.state.email_service = EmailService(settings)
    app.state.login_rate_limiter = RateLimiter.for_login(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_health_check(app)
    register_routes(app)
    register_exception_handlers(app)
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    """Register health check endpoints.

    Args:
        app: FastAPI application instance.
    """

    @app.get("/health", tags=["health"])
    async def health_check():
        """Returns 200 if the service is running."""
        return {
            "status": "healthy",
            "service": "Client Portal",
            "version": get_settings().app_version,
        }

    @app.get("/ready", tags=["health"])
    async def readiness_check():
        """Returns 200 once the database answers."""
        if await get_db_manager().check_connection():
            return {"status": "ready", "database": "connected"}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "database": "disconnected"},
        )


def register_routes(app: FastAPI) -> None:
    """Register API routes.

    Args:
        app: FastAPI application instance.
    """
    from clientportal.infrastructure.api.routes import auth_router

    settings = get_settings()
    app.include_router(auth_router, prefix=f"{settings.api_prefix}/auth", tags=["auth"])


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        """Render classified failures as ``{"error", "message"}`` bodies."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request failed",
            path=str(request.url.path),
            method=request.method,
            error=exc.kind,
            status_code=exc.status_code,
        )
        headers = None
        if exc.status_code == 401:
            headers = {"WWW-Authenticate": "Bearer"}
        elif isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "error",
                "message": str(exc) if get_settings().debug else "An unexpected error occurred",
            },
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware.

    Args:
        app: FastAPI application instance.
    """

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Log every request and propagate a correlation ID."""
        correlation_id = request.headers.get("X-Correlation-ID", f"cid_{uuid.uuid4().hex[:12]}")
        bind_correlation_id(correlation_id)

        logger.info(
            "Request started",
            method=request.method,
            path=str(request.url.path),
        )

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
            )
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            clear_context()
