"""Query helpers for share lookups."""

from tempshare.db.queries.expiry import count_expired, count_live, select_expired, select_live

__all__ = ["count_expired", "count_live", "select_expired", "select_live"]
