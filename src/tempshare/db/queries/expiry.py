"""Query builders over the share expiry index.

Every query here filters on ``shares.expires_at`` so it is served by
``idx_shares_expires_at`` rather than a full table scan. A share is live
while ``now < expires_at`` and expired from ``expires_at`` onwards.
"""

from datetime import datetime

from sqlalchemy import Select, func, select

from tempshare.db.models.share import Share


def select_expired(now: datetime, limit: int | None = None) -> Select:
    """Select shares whose expiry instant has passed, oldest first.

    Args:
        now: Current time
        limit: Maximum rows to return

    Returns:
        Select statement for Share rows
    """
    query = select(Share).where(Share.expires_at <= now).order_by(Share.expires_at)
    if limit is not None:
        query = query.limit(limit)
    return query


def select_live(now: datetime) -> Select:
    """Select shares that are still readable, newest first."""
    return (
        select(Share)
        .where(Share.expires_at > now)
        .order_by(Share.created_at.desc(), Share.share_id.desc())
    )


def count_expired(now: datetime) -> Select:
    return select(func.count(Share.share_id)).where(Share.expires_at <= now)


def count_live(now: datetime) -> Select:
    return select(func.count(Share.share_id)).where(Share.expires_at > now)
