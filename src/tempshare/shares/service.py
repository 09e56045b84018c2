"""Share write, read and listing paths.

Coordinates the record store with the blob stores: a file is stored before
its record is created and removed again if record creation fails, reads
enforce the share password, and listings never reveal the content of
protected shares.
"""

import asyncio
from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog

from tempshare.core.exceptions import (
    BlobStoreError,
    PasswordInvalidError,
    PasswordRequiredError,
    ShareNotFoundError,
    ShareValidationError,
)
from tempshare.core.passwords import DEFAULT_ITERATIONS, hash_password, verify_password
from tempshare.db.models.share import Share
from tempshare.observability.metrics import record_share_read, record_upload
from tempshare.shares.store import SharePage, ShareStore
from tempshare.storage.protocol import BlobStore, generate_unique_name
from tempshare.storage.registry import BlobStoreRegistry
from tempshare.storage.types import BlobRef

logger = structlog.get_logger("tempshare.shares.service")

MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class UploadedFile:
    """A file received with an upload request."""

    data: bytes
    filename: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class FileTarget:
    """Where to serve a share's file from."""

    share: Share
    blob_ref: BlobRef
    store: BlobStore

    @property
    def redirect_url(self) -> str | None:
        """Public URL to redirect to, or None if the bytes must be streamed."""
        return self.blob_ref.public_url if self.store.serves_publicly else None


class ShareService:
    """Application service for creating and reading shares."""

    def __init__(
        self,
        store: ShareStore,
        blobs: BlobStoreRegistry,
        max_upload_bytes: int = 50 * 1024 * 1024,
        preview_length: int = 100,
        password_iterations: int = DEFAULT_ITERATIONS,
    ) -> None:
        self.store = store
        self.blobs = blobs
        self.max_upload_bytes = max_upload_bytes
        self.preview_length = preview_length
        self.password_iterations = password_iterations

    async def upload(
        self,
        title: str | None,
        text: str | None = None,
        password: str | None = None,
        file: UploadedFile | None = None,
    ) -> Share:
        """Create a share from text, a file, or both.

        Inputs are validated before anything is stored. If the record cannot
        be created after the file was stored, the file is deleted again.

        Raises:
            ShareValidationError: If the request is invalid or the file too large
            BlobStoreError: If the file could not be stored
            StoreError: If the record could not be created
        """
        self.store.validate(title, bool(text), file is not None)
        if file is not None and file.size > self.max_upload_bytes:
            raise ShareValidationError("File too large", field="file")

        password_hash = None
        if password:
            password_hash = await asyncio.to_thread(
                hash_password, password, self.password_iterations
            )

        blob_ref = None
        if file is not None:
            blob_ref = await self._store_file(file)

        try:
            share = await self.store.create(
                title=title,
                content=text,
                blob_ref=blob_ref,
                password_hash=password_hash,
            )
        except Exception:
            record_upload("failure", has_file=file is not None)
            if blob_ref is not None:
                await self._discard_blob(blob_ref)
            raise

        record_upload("success", has_file=file is not None, size_bytes=file.size if file else None)
        return share

    async def _store_file(self, file: UploadedFile) -> BlobRef:
        store = self.blobs.default
        stored = await store.put(file.data, generate_unique_name(file.filename), file.mime_type)
        return BlobRef(
            backend=store.backend,
            external_path=stored.path,
            public_url=stored.public_url,
            original_name=file.filename,
            size_bytes=file.size,
            mime_type=file.mime_type or "application/octet-stream",
        )

    async def _discard_blob(self, blob_ref: BlobRef) -> None:
        try:
            await self.blobs.for_ref(blob_ref).delete(blob_ref.external_path)
        except BlobStoreError as e:
            # The reaper never sees this object, it has no record
            logger.error(
                "orphaned_upload_blob",
                blob_path=blob_ref.external_path,
                backend=blob_ref.backend,
                error=str(e),
            )
        else:
            logger.info("upload_blob_discarded", blob_path=blob_ref.external_path)

    async def read(self, share_id: UUID, password: str | None = None, kind: str = "share") -> Share:
        """Fetch a live share, enforcing its password.

        Raises:
            ShareNotFoundError: If the share is absent or expired
            PasswordRequiredError: If the share is protected and no password was given
            PasswordInvalidError: If the password does not match
        """
        try:
            share = await self.store.get(share_id)
        except ShareNotFoundError as e:
            record_share_read(kind, "expired" if e.expired else "not_found")
            raise

        if share.is_protected:
            if not password:
                record_share_read(kind, "password_required")
                raise PasswordRequiredError(share_id)
            matches = await asyncio.to_thread(verify_password, password, share.password_hash)
            if not matches:
                record_share_read(kind, "password_invalid")
                logger.info("share_password_rejected", share_id=str(share_id))
                raise PasswordInvalidError(share_id)

        record_share_read(kind, "ok")
        return share

    async def open_file(self, share_id: UUID, password: str | None = None) -> FileTarget:
        """Resolve the file of a live share for serving.

        Raises:
            ShareNotFoundError: If the share is absent, expired or has no file
        """
        share = await self.read(share_id, password, kind="file")
        blob_ref = share.blob_ref
        if blob_ref is None:
            raise ShareNotFoundError(share_id)
        return FileTarget(share=share, blob_ref=blob_ref, store=self.blobs.for_ref(blob_ref))

    async def list_page(self, page: int = 1, limit: int = 20) -> SharePage:
        limit = min(max(1, limit), MAX_PAGE_SIZE)
        return await self.store.list_page(page, limit)

    def preview(self, share: Share) -> dict[str, Any]:
        """Listing entry for a share.

        Protected shares keep their title but hide text and file details.
        """
        protected = share.is_protected
        blob_ref = share.blob_ref
        text_preview = None
        if share.content and not protected:
            text_preview = share.content[: self.preview_length]
            if len(share.content) > self.preview_length:
                text_preview += "..."

        return {
            "id": str(share.share_id),
            "title": share.title,
            "hasText": bool(share.content),
            "hasFile": blob_ref is not None,
            "isProtected": protected,
            "originalFileName": blob_ref.original_name if blob_ref and not protected else None,
            "fileSize": blob_ref.size_bytes if blob_ref and not protected else None,
            "mimeType": blob_ref.mime_type if blob_ref and not protected else None,
            "textPreview": text_preview,
            "createdAt": share.created_at.isoformat(),
            "expiresAt": share.expires_at.isoformat(),
        }
