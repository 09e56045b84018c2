"""Blob storage for uploaded files.

Usage:
    from tempshare.storage import BlobStoreRegistry, create_blob_store

    registry = BlobStoreRegistry(create_blob_store(settings))
    blob = await registry.default.put(data, generate_unique_name(filename), mime_type)
"""

from tempshare.storage.local import LocalBlobStore
from tempshare.storage.memory import InMemoryBlobStore
from tempshare.storage.protocol import BlobStore, generate_unique_name
from tempshare.storage.registry import BlobStoreRegistry, create_blob_store
from tempshare.storage.supabase import SupabaseBlobStore
from tempshare.storage.types import BlobRef, StoredBlob

__all__ = [
    "BlobRef",
    "BlobStore",
    "BlobStoreRegistry",
    "InMemoryBlobStore",
    "LocalBlobStore",
    "StoredBlob",
    "SupabaseBlobStore",
    "create_blob_store",
    "generate_unique_name",
]
