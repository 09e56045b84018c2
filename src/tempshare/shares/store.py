"""Retention record store.

Owns the lifecycle rules of share records: validation on create, a fixed
expiry instant computed once at creation, and reads that never return a
record at or past its expiry instant, whether or not the reaper has run.

Usage:
    store = ShareStore(session_factory, ttl_seconds=10800)
    share = await store.create("notes", content="hello")
    share = await store.get(share.share_id)
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tempshare.core.clock import Clock, utcnow
from tempshare.core.exceptions import ShareNotFoundError, ShareValidationError, StoreError
from tempshare.db.models.share import Share
from tempshare.db.repositories.share import ShareRepository
from tempshare.storage.types import BlobRef

logger = structlog.get_logger("tempshare.shares.store")


@dataclass(frozen=True)
class SharePage:
    """One page of live shares, newest first."""

    items: list[Share]
    has_more: bool
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.page_size) if self.page_size else 0


@dataclass(frozen=True)
class ShareStats:
    """Counters reported by the cleanup stats endpoint."""

    total_shares: int
    recent_shares: int
    expired_shares: int
    shares_with_files: int
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "totalShares": self.total_shares,
            "recentShares": self.recent_shares,
            "expiredShares": self.expired_shares,
            "sharesWithFiles": self.shares_with_files,
            "timestamp": self.timestamp.isoformat(),
        }


class ShareStore:
    """Persistence and expiry rules for share records."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl_seconds: int = 3 * 60 * 60,
        clock: Clock = utcnow,
        max_title_length: int = 100,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Factory for database sessions
            ttl_seconds: Lifetime of every share
            clock: Returns the current aware UTC datetime
            max_title_length: Longest accepted title
        """
        self._session_factory = session_factory
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock
        self.max_title_length = max_title_length

    def now(self) -> datetime:
        return self._clock()

    @asynccontextmanager
    async def _repository(self, operation: str) -> AsyncIterator[ShareRepository]:
        """Yield a repository on a fresh session, wrapping database errors."""
        try:
            async with self._session_factory() as session:
                yield ShareRepository(session)
        except SQLAlchemyError as e:
            logger.error("share_store_error", operation=operation, error=str(e))
            raise StoreError(f"Database operation failed: {type(e).__name__}", operation) from e

    def validate(self, title: str | None, has_content: bool, has_blob: bool) -> str:
        """Check the inputs of a new share.

        Returns:
            The normalized title

        Raises:
            ShareValidationError: If the title is missing or too long, or
                there is neither text nor a file
        """
        normalized = (title or "").strip()
        if not normalized:
            raise ShareValidationError("Title is required", field="title")
        if len(normalized) > self.max_title_length:
            raise ShareValidationError(
                f"Title must be at most {self.max_title_length} characters", field="title"
            )
        if not has_content and not has_blob:
            raise ShareValidationError(
                "Either text content or a file must be provided", field="content"
            )
        return normalized

    async def create(
        self,
        title: str,
        content: str | None = None,
        blob_ref: BlobRef | None = None,
        password_hash: str | None = None,
    ) -> Share:
        """Create and persist a share.

        ``expires_at`` is fixed here to ``created_at + TTL``.

        Raises:
            ShareValidationError: If the inputs are invalid
            StoreError: If the database write fails
        """
        normalized_title = self.validate(title, bool(content), blob_ref is not None)
        created_at = self.now()

        share = Share(
            title=normalized_title,
            content=content or None,
            password_hash=password_hash,
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )
        share.blob_ref = blob_ref

        async with self._repository("create") as repo:
            share = await repo.create(share)

        logger.info(
            "share_created",
            share_id=str(share.share_id),
            has_file=blob_ref is not None,
            protected=password_hash is not None,
            expires_at=share.expires_at.isoformat(),
        )
        return share

    async def get(self, share_id: UUID) -> Share:
        """Fetch a live share.

        Raises:
            ShareNotFoundError: If the id is unknown or the share has expired
            StoreError: If the database read fails
        """
        async with self._repository("get") as repo:
            share = await repo.get(share_id)

        if share is None:
            raise ShareNotFoundError(share_id)
        if share.is_expired(self.now()):
            raise ShareNotFoundError(share_id, expired=True)
        return share

    async def delete(self, share_id: UUID) -> bool:
        """Delete a share record. Deleting a missing record is not an error.

        Callers must remove the share's blob first.

        Returns:
            True if a record was removed
        """
        async with self._repository("delete") as repo:
            return await repo.delete_by_pk(share_id)

    async def list_page(self, page: int = 1, page_size: int = 20) -> SharePage:
        """List live shares, newest first.

        Args:
            page: 1-based page number
            page_size: Shares per page
        """
        page = max(1, page)
        page_size = max(1, page_size)
        now = self.now()

        async with self._repository("list_page") as repo:
            items = await repo.list_live(now, limit=page_size, offset=(page - 1) * page_size)
            total = await repo.count_live(now)

        return SharePage(
            items=items,
            has_more=page * page_size < total,
            total=total,
            page=page,
            page_size=page_size,
        )

    async def find_expired(self, limit: int | None = None) -> list[Share]:
        """Shares at or past their expiry instant, oldest expiry first."""
        async with self._repository("find_expired") as repo:
            return await repo.find_expired(self.now(), limit)

    async def get_stats(self) -> ShareStats:
        now = self.now()
        async with self._repository("get_stats") as repo:
            return ShareStats(
                total_shares=await repo.count(),
                recent_shares=await repo.count_created_since(now - timedelta(hours=1)),
                expired_shares=await repo.count_expired(now),
                shares_with_files=await repo.count_with_files(),
                timestamp=now,
            )
