"""In-memory blob store for tests and local experiments."""

import asyncio

from tempshare.core.exceptions import BlobStoreError
from tempshare.storage.types import StoredBlob


class InMemoryBlobStore:
    """Blob store that keeps objects in a dict.

    Not allowed in production: objects vanish on restart while their share
    records survive.
    """

    backend = "memory"
    serves_publicly = False

    def __init__(self, base_url: str = "memory://blobs") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self._lock = asyncio.Lock()

    async def put(self, data: bytes, name: str, mime_type: str) -> StoredBlob:
        async with self._lock:
            if name in self.objects:
                raise BlobStoreError("Object already exists", operation="put", path=name)
            self.objects[name] = (data, mime_type)
        return StoredBlob(path=name, public_url=self.public_url(name))

    async def delete(self, path: str) -> None:
        async with self._lock:
            self.objects.pop(path, None)

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    async def fetch(self, path: str) -> bytes:
        try:
            return self.objects[path][0]
        except KeyError:
            raise BlobStoreError("Object not found", operation="fetch", path=path) from None

    async def exists(self, path: str) -> bool:
        return path in self.objects

    async def aclose(self) -> None:
        return None
