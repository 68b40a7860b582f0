"""
EventSync API - FastAPI application entry point.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import get_settings
from .database import Database
from .limiter import limiter
from .logging_config import api_logger
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .responses import register_exception_handlers
from .routes import (
    auth_router,
    users_router,
    events_router,
    recipients_router,
    messages_router,
    stats_router,
    health_router,
)

settings = get_settings()


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the application around a database handle.

    Without one, a handle for ``settings.database_url`` is created and
    closed again on shutdown.
    """
    owns_database = database is None
    if owns_database:
        database = Database(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            echo=settings.db_echo,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle - startup and shutdown"""
        # Startup
        database.open()
        # Create tables (in production, use Alembic migrations instead)
        database.create_all()
        api_logger.info("EventSync API started", environment=settings.environment)

        yield  # App is running

        # Shutdown; an injected handle is closed by whoever passed it in
        if owns_database:
            database.close()

    app = FastAPI(
        title=settings.app_name,
        description="Backend API for event management and participant outreach",
        version="1.0.0",
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.database = database

    # Add rate limiter to app state
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Security headers middleware
    app.add_middleware(SecurityHeadersMiddleware)

    # Request logging middleware (only in debug mode)
    if settings.debug:
        app.add_middleware(RequestLoggingMiddleware)

    # CORS - Properly configured with specific methods
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Origin",
            "X-Requested-With",
        ],
        max_age=3600,  # Cache preflight requests for 1 hour
    )

    # Routes
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(events_router)
    app.include_router(recipients_router)
    app.include_router(messages_router)
    app.include_router(stats_router)
    app.include_router(health_router)

    @app.get("/")
    def root():
        """Root endpoint points at the API docs."""
        return {
            "message": settings.app_name,
            "docs": "/api/docs" if settings.debug else "Disabled in production",
        }

    return app


app = create_app()
