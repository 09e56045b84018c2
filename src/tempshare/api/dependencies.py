"""FastAPI dependencies for API endpoints.

Services are created once by the application factory and kept on
``app.state``. These dependencies hand them to route handlers.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tempshare.config.settings import Settings
from tempshare.reaper.service import Reaper
from tempshare.security.quota import QuotaTracker
from tempshare.shares.service import ShareService

__all__ = [
    "get_db",
    "get_settings_dep",
    "get_share_service",
    "get_reaper",
    "get_quota_tracker",
    "get_request_id",
    "DbSession",
    "AppSettings",
    "Shares",
    "ReaperDep",
    "Quotas",
]


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Database session from the application's session factory."""
    async with request.app.state.session_factory() as session:
        yield session


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_share_service(request: Request) -> ShareService:
    return request.app.state.share_service


def get_reaper(request: Request) -> Reaper:
    return request.app.state.reaper


def get_quota_tracker(request: Request) -> QuotaTracker:
    return request.app.state.quota_tracker


def get_request_id(request: Request) -> str:
    """Get the request ID from request state.

    The request ID is set by RequestContextMiddleware.
    """
    return str(getattr(request.state, "request_id", "unknown"))


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings_dep)]
Shares = Annotated[ShareService, Depends(get_share_service)]
ReaperDep = Annotated[Reaper, Depends(get_reaper)]
Quotas = Annotated[QuotaTracker, Depends(get_quota_tracker)]
