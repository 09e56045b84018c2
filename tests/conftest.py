"""Pytest fixtures for tempshare tests."""

import logging
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tempshare.api.app import create_app
from tempshare.config.settings import BlobBackend, Settings
from tempshare.db.models.base import Base
from tempshare.shares.service import ShareService
from tempshare.shares.store import ShareStore
from tempshare.storage.memory import InMemoryBlobStore
from tempshare.storage.registry import BlobStoreRegistry

TEST_TTL_SECONDS = 3 * 60 * 60


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def timestamp(self) -> float:
        return self.current.timestamp()

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


# =============================================================================
# Structlog Configuration Fixture
# =============================================================================


@pytest.fixture(scope="function", autouse=True)
def reset_structlog_after_test():
    """Reset structlog configuration after each test.

    This ensures tests that modify structlog global state
    don't affect other tests.
    """
    yield
    for name in (None, "uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy"):
        logging.getLogger(name).handlers = []
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: in-memory database and blobs, cheap hashing."""
    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        BLOB_BACKEND=BlobBackend.MEMORY,
        PASSWORD_HASH_ITERATIONS=1000,
        ENABLE_SCHEDULED_CLEANUP=False,
        CORS_ORIGINS=[],
        MAX_UPLOAD_BYTES=1024 * 1024,
        log_level="WARNING",
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def blob_registry(blob_store: InMemoryBlobStore) -> BlobStoreRegistry:
    return BlobStoreRegistry(blob_store)


@pytest.fixture
def share_store(session_factory, clock: FakeClock) -> ShareStore:
    return ShareStore(session_factory, ttl_seconds=TEST_TTL_SECONDS, clock=clock)


@pytest.fixture
def share_service(share_store: ShareStore, blob_registry: BlobStoreRegistry) -> ShareService:
    return ShareService(
        share_store,
        blob_registry,
        max_upload_bytes=1024,
        preview_length=20,
        password_iterations=1000,
    )


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def test_app(
    test_settings: Settings,
    blob_store: InMemoryBlobStore,
    session_factory: async_sessionmaker[AsyncSession],
    clock: FakeClock,
    sleeps: SleepRecorder,
) -> FastAPI:
    """Application wired to the test database, blob store and clock."""
    return create_app(
        test_settings,
        blob_store=blob_store,
        session_factory=session_factory,
        clock=clock,
        sleep=sleeps,
    )


@pytest_asyncio.fixture
async def test_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for API tests."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
