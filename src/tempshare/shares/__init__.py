"""Share records and the services built on them."""

from tempshare.shares.service import FileTarget, ShareService, UploadedFile
from tempshare.shares.store import SharePage, ShareStats, ShareStore

__all__ = [
    "FileTarget",
    "SharePage",
    "ShareService",
    "ShareStats",
    "ShareStore",
    "UploadedFile",
]
