"""Blob store selection.

New uploads go to the configured default store. Existing records are
served and reaped by the store named on their ``BlobRef``, so records
written before a backend switch keep working.
"""

from collections.abc import Iterable

from tempshare.config.settings import BlobBackend, Settings
from tempshare.core.exceptions import BlobStoreError
from tempshare.storage.local import LocalBlobStore
from tempshare.storage.memory import InMemoryBlobStore
from tempshare.storage.protocol import BlobStore
from tempshare.storage.supabase import SupabaseBlobStore
from tempshare.storage.types import BlobRef


class BlobStoreRegistry:
    """Blob stores by backend name, with one default for new uploads."""

    def __init__(self, default: BlobStore, others: Iterable[BlobStore] = ()) -> None:
        self.default = default
        self._stores: dict[str, BlobStore] = {default.backend: default}
        for store in others:
            self._stores.setdefault(store.backend, store)

    def get(self, backend: str) -> BlobStore:
        """Return the store for a backend name.

        Raises:
            BlobStoreError: If no such store is configured
        """
        try:
            return self._stores[backend]
        except KeyError:
            raise BlobStoreError(
                f"No blob store configured for backend '{backend}'", operation="resolve"
            ) from None

    def for_ref(self, ref: BlobRef) -> BlobStore:
        return self.get(ref.backend)

    @property
    def backends(self) -> list[str]:
        return list(self._stores)

    async def aclose(self) -> None:
        for store in self._stores.values():
            await store.aclose()


def create_blob_store(settings: Settings) -> BlobStore:
    """Build the blob store selected by ``BLOB_BACKEND``.

    Raises:
        BlobStoreError: If the Supabase backend is selected without credentials
    """
    if settings.BLOB_BACKEND == BlobBackend.SUPABASE:
        key = settings.get_supabase_key()
        if not settings.SUPABASE_URL or key is None:
            raise BlobStoreError("Missing Supabase URL or key", operation="configure")
        return SupabaseBlobStore(
            url=settings.SUPABASE_URL,
            key=key.get_secret_value(),
            bucket=settings.SUPABASE_STORAGE_BUCKET,
        )
    if settings.BLOB_BACKEND == BlobBackend.MEMORY:
        return InMemoryBlobStore()
    return LocalBlobStore(settings.LOCAL_BLOB_DIR)
