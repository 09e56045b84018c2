"""Database models."""

from .base import Base, PortableUUID, UTCDateTime
from .share import Share

__all__ = ["Base", "PortableUUID", "Share", "UTCDateTime"]
