"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from bizcore import __version__
from bizcore.api.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    ObservabilityMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
)
from bizcore.api.routers import health_router, v1_router
from bizcore.config.settings import Settings, get_settings
from bizcore.core.logging import get_logger, setup_logging
from bizcore.db.config import (
    close_db,
    create_all,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from bizcore.invitations.email import EmailSender, build_email_sender
from bizcore.observability.metrics import set_service_info

logger = get_logger("bizcore.api")


def create_app(
    settings: Settings | None = None,
    engine: AsyncEngine | None = None,
    email_sender: EmailSender | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The engine, session factory and email sender live on ``app.state``; they
    are created here rather than in the lifespan so the app is usable by
    transports that skip lifespan events.

    Args:
        settings: Optional settings override (useful for testing)
        engine: Optional engine override (tests pass an in-memory SQLite engine)
        email_sender: Optional sender override

    Returns:
        Configured FastAPI application

    Example:
        # Run with uvicorn
        uvicorn bizcore.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Bizcore API",
        description="Multi-tenant workspaces, invitations and business entities",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine or create_engine_from_settings(settings)
    app.state.session_factory = create_session_factory(app.state.engine)
    app.state.email_sender = email_sender or build_email_sender(settings)

    _configure_middleware(app, settings)
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup configures logging and checks the database; shutdown disposes
    the engine.
    """
    settings: Settings = app.state.settings
    setup_logging()
    set_service_info(__version__, settings.ENVIRONMENT)
    logger.info("application_starting", environment=settings.ENVIRONMENT)

    engine: AsyncEngine = app.state.engine
    if settings.DATABASE_URL.startswith("sqlite"):
        await create_all(engine)
    await init_db(engine)
    logger.info("database_ready")

    yield

    logger.info("application_stopping")
    await close_db(engine)


def _configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. ObservabilityMiddleware - Records metrics
    2. RequestLoggingMiddleware - Logs all requests
    3. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    4. CORSMiddleware - Handles CORS (if configured)
    5. AuthenticationMiddleware - Resolves the Bearer session token
    6. RequestContextMiddleware - Sets ContextVar for request context

    Starlette runs middleware from last-added to first-added, so they are
    added in reverse order.
    """
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(AuthenticationMiddleware)

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ObservabilityMiddleware)


def _configure_routers(app: FastAPI) -> None:
    app.include_router(health_router)
    app.include_router(v1_router)
