"""Filesystem blob store.

Objects are written below a root directory and streamed back by the
application, so the public URL is only informational.
"""

import asyncio
from pathlib import Path

import structlog

from tempshare.core.exceptions import BlobStoreError
from tempshare.storage.types import StoredBlob

logger = structlog.get_logger("tempshare.storage.local")


class LocalBlobStore:
    """Blob store backed by a local directory."""

    backend = "local"
    serves_publicly = False

    def __init__(self, root: str | Path, public_base_url: str = "/uploads") -> None:
        """Initialize the store.

        Args:
            root: Directory holding the objects (created if missing)
            public_base_url: Prefix used to build informational URLs
        """
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str, operation: str) -> Path:
        target = (self.root / path).resolve()
        if target.parent != self.root:
            raise BlobStoreError("Path escapes the storage directory", operation, path)
        return target

    async def put(self, data: bytes, name: str, mime_type: str) -> StoredBlob:
        target = self._resolve(name, "put")

        def _write() -> None:
            # "xb" refuses to overwrite an existing object
            with open(target, "xb") as fh:
                fh.write(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise BlobStoreError(f"Failed to write object: {e}", "put", name) from e

        logger.debug("blob_stored", blob_path=name, size_bytes=len(data), mime_type=mime_type)
        return StoredBlob(path=name, public_url=self.public_url(name))

    async def delete(self, path: str) -> None:
        target = self._resolve(path, "delete")
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as e:
            raise BlobStoreError(f"Failed to delete object: {e}", "delete", path) from e

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{path}"

    async def fetch(self, path: str) -> bytes:
        target = self._resolve(path, "fetch")
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as e:
            raise BlobStoreError("Object not found", "fetch", path) from e
        except OSError as e:
            raise BlobStoreError(f"Failed to read object: {e}", "fetch", path) from e

    async def exists(self, path: str) -> bool:
        target = self._resolve(path, "exists")
        return await asyncio.to_thread(target.is_file)

    async def aclose(self) -> None:
        return None
