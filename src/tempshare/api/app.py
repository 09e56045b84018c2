"""FastAPI application factory."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from tempshare import __version__
from tempshare.api.middleware import (
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
)
from tempshare.api.routers import admin_router, health_router, metrics_router, shares_router
from tempshare.config.settings import Settings, get_settings
from tempshare.config.validation import get_configuration_summary, validate_or_raise
from tempshare.core.clock import Clock, utcnow
from tempshare.core.logging import setup_logging
from tempshare.db.config import close_db, create_engine_from_settings, create_session_factory, init_db
from tempshare.reaper.service import Reaper, ReaperConfig
from tempshare.security.config import QuotaConfig
from tempshare.security.quota import QuotaTracker
from tempshare.security.rate_limiter import QuotaMiddleware, Sleep
from tempshare.shares.service import ShareService
from tempshare.shares.store import ShareStore
from tempshare.storage.protocol import BlobStore
from tempshare.storage.registry import BlobStoreRegistry, create_blob_store

logger = structlog.get_logger("tempshare.api")


def create_app(
    settings: Settings | None = None,
    *,
    blob_store: BlobStore | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    clock: Clock | None = None,
    sleep: Sleep | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Services are built here, not in the lifespan, so the application is
    fully wired as soon as this returns. The lifespan only prepares the
    database and runs the scheduled reaper.

    Args:
        settings: Optional settings override (useful for testing)
        blob_store: Blob store override (default: from BLOB_BACKEND)
        session_factory: Database session factory override
        clock: Source of the current time for expiry and quotas
        sleep: Coroutine used by the quota middleware to apply delay

    Returns:
        Configured FastAPI application

    Example:
        # Production
        app = create_app()

        # Run with uvicorn
        uvicorn tempshare.api.app:create_app --factory
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    validate_or_raise(settings)

    clock = clock or utcnow

    engine: AsyncEngine | None = None
    if session_factory is None:
        engine = create_engine_from_settings(settings)
        session_factory = create_session_factory(engine)

    blobs = BlobStoreRegistry(blob_store or create_blob_store(settings))
    store = ShareStore(
        session_factory,
        ttl_seconds=settings.SHARE_TTL_SECONDS,
        clock=clock,
        max_title_length=settings.MAX_TITLE_LENGTH,
    )
    share_service = ShareService(
        store,
        blobs,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
        preview_length=settings.TEXT_PREVIEW_LENGTH,
        password_iterations=settings.PASSWORD_HASH_ITERATIONS,
    )
    reaper = Reaper(
        store,
        blobs,
        ReaperConfig(
            interval_seconds=settings.reaper_interval_seconds,
            batch_size=settings.REAPER_BATCH_SIZE,
        ),
    )
    quota_tracker = QuotaTracker(clock=lambda: clock().timestamp())

    app = FastAPI(
        title="tempshare",
        description="Temporary content sharing with automatic expiry",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    # Store services on app state for access in dependencies
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.blob_stores = blobs
    app.state.share_store = store
    app.state.share_service = share_service
    app.state.reaper = reaper
    app.state.quota_tracker = quota_tracker
    app.state.started_at = time.monotonic()

    _configure_middleware(app, settings, quota_tracker, sleep)
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.

    Args:
        app: FastAPI application

    Yields:
        None (context for application lifetime)
    """
    settings: Settings = app.state.settings
    engine: AsyncEngine | None = app.state.engine
    reaper: Reaper = app.state.reaper

    logger.info("tempshare_starting", **get_configuration_summary(settings))

    if engine is not None:
        await init_db(engine, create_tables=settings.DATABASE_URL.startswith("sqlite"))
        logger.info("database_initialized")

    if settings.ENABLE_SCHEDULED_CLEANUP:
        await reaper.start()

    yield

    logger.info("tempshare_stopping")
    await reaper.stop()
    await app.state.blob_stores.aclose()

    if engine is not None:
        await close_db(engine)
        logger.info("database_closed")


def _configure_middleware(
    app: FastAPI,
    settings: Settings,
    quota_tracker: QuotaTracker,
    sleep: Sleep | None,
) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. CORSMiddleware - Answers preflights, adds CORS headers to every response
       (errors and 429s included)
    2. RequestContextMiddleware - Assigns the request ID
    3. RequestLoggingMiddleware - Logs all requests
    4. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    5. QuotaMiddleware - Per-device quotas

    Note: Middleware is added in reverse order because Starlette
    processes them from last-added to first-added.
    """
    app.add_middleware(
        QuotaMiddleware,
        tracker=quota_tracker,
        config=QuotaConfig.from_settings(settings),
        sleep=sleep,
    )

    app.add_middleware(ErrorHandlingMiddleware, debug=settings.DEBUG)

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(RequestContextMiddleware)

    # Outermost, so responses built by the error and quota layers carry CORS headers
    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Retry-After", "X-Request-ID", "X-RateLimit-Remaining"],
        )


def _configure_routers(app: FastAPI) -> None:
    """Configure API routers.

    The admin router is registered before the share router so its fixed
    paths win over ``/api/{share_id}``.
    """
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(admin_router)
    app.include_router(shares_router)
