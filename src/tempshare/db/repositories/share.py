"""Repository for share records."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from tempshare.db.models.share import Share
from tempshare.db.queries.expiry import count_expired, count_live, select_expired, select_live
from tempshare.db.repositories.base import BaseRepository


class ShareRepository(BaseRepository[Share, UUID]):
    """Data access for share records.

    Lookups by expiry go through the query builders in
    ``tempshare.db.queries.expiry`` so they use the expiry index.
    """

    async def list_live(self, now: datetime, *, limit: int, offset: int = 0) -> list[Share]:
        """Live shares, newest first."""
        result = await self.db.execute(select_live(now).limit(limit).offset(offset))
        return list(result.scalars().all())

    async def count_live(self, now: datetime) -> int:
        result = await self.db.execute(count_live(now))
        return result.scalar() or 0

    async def find_expired(self, now: datetime, limit: int | None = None) -> list[Share]:
        """Expired shares, oldest expiry first."""
        result = await self.db.execute(select_expired(now, limit))
        return list(result.scalars().all())

    async def count_expired(self, now: datetime) -> int:
        result = await self.db.execute(count_expired(now))
        return result.scalar() or 0

    async def count_created_since(self, since: datetime) -> int:
        stmt = select(func.count(Share.share_id)).where(Share.created_at >= since)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def count_with_files(self) -> int:
        stmt = select(func.count(Share.share_id)).where(Share.blob_path.is_not(None))
        result = await self.db.execute(stmt)
        return result.scalar() or 0
