"""Repositories for database access."""

from tempshare.db.repositories.base import BaseRepository
from tempshare.db.repositories.share import ShareRepository

__all__ = ["BaseRepository", "ShareRepository"]
