"""Blob store interface and object naming."""

import os
import secrets
import time
from typing import Protocol, runtime_checkable

from tempshare.security.sanitization import sanitize_filename
from tempshare.storage.types import StoredBlob


@runtime_checkable
class BlobStore(Protocol):
    """Object storage for uploaded files.

    Attributes:
        backend: Name recorded on share records that use this store
        serves_publicly: Whether ``public_url`` can be handed to clients
            directly, or the application has to stream the bytes itself
    """

    backend: str
    serves_publicly: bool

    async def put(self, data: bytes, name: str, mime_type: str) -> StoredBlob:
        """Store an object under ``name``.

        Raises:
            BlobStoreError: If the object could not be stored
        """
        ...

    async def delete(self, path: str) -> None:
        """Delete an object. Deleting a missing object succeeds.

        Raises:
            BlobStoreError: If the store refused or failed the delete
        """
        ...

    def public_url(self, path: str) -> str:
        ...

    async def fetch(self, path: str) -> bytes:
        """Read an object's bytes.

        Raises:
            BlobStoreError: If the object is missing or unreadable
        """
        ...

    async def exists(self, path: str) -> bool:
        ...

    async def aclose(self) -> None:
        ...


def generate_unique_name(original_name: str, now_ms: int | None = None) -> str:
    """Build a collision resistant object name from an uploaded filename.

    The name is ``<ms timestamp>-<random>-<base>.<ext>`` with the base and
    extension taken from the sanitized original name.

    Example:
        >>> generate_unique_name("report.pdf")  # doctest: +SKIP
        '1718000000000-482913775-report.pdf'
    """
    safe_name = sanitize_filename(original_name)
    base, ext = os.path.splitext(safe_name)
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{timestamp}-{secrets.randbelow(10**9)}-{base or 'file'}{ext}"
