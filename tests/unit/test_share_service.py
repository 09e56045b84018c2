"""Tests for the share service write and read paths."""

import pytest

from tempshare.core.exceptions import (
    BlobStoreError,
    PasswordInvalidError,
    PasswordRequiredError,
    ShareNotFoundError,
    ShareValidationError,
    StoreError,
)
from tempshare.shares.service import ShareService, UploadedFile
from tempshare.shares.store import ShareStore
from tempshare.storage.memory import InMemoryBlobStore


def make_file(size: int = 16, name: str = "notes.txt") -> UploadedFile:
    return UploadedFile(data=b"x" * size, filename=name, mime_type="text/plain")


@pytest.mark.asyncio
class TestUpload:
    """Tests for ShareService.upload."""

    async def test_text_share(self, share_service: ShareService, blob_store: InMemoryBlobStore):
        """Test a text share stores no blob."""
        share = await share_service.upload(title="hello", text="world")

        assert share.content == "world"
        assert share.blob_ref is None
        assert blob_store.objects == {}

    async def test_file_share_stores_blob(
        self, share_service: ShareService, blob_store: InMemoryBlobStore
    ):
        """Test the file is stored and referenced by the record."""
        share = await share_service.upload(title="doc", file=make_file(name="my notes.txt"))

        ref = share.blob_ref
        assert ref.backend == "memory"
        assert ref.original_name == "my notes.txt"
        assert ref.size_bytes == 16
        assert ref.external_path.endswith("-my_notes.txt")
        assert await blob_store.exists(ref.external_path)

    async def test_password_is_hashed(self, share_service: ShareService):
        """Test the share stores a hash, never the password."""
        share = await share_service.upload(title="secret", text="x", password="hunter2")

        assert share.password_hash.startswith("pbkdf2_sha256$1000$")
        assert "hunter2" not in share.password_hash

    async def test_oversized_file_is_rejected_before_storing(
        self, share_service: ShareService, blob_store: InMemoryBlobStore
    ):
        """Test files over the limit never reach the blob store."""
        with pytest.raises(ShareValidationError, match="File too large"):
            await share_service.upload(title="big", file=make_file(size=1025))
        assert blob_store.objects == {}

    async def test_invalid_request_stores_nothing(
        self, share_service: ShareService, blob_store: InMemoryBlobStore
    ):
        """Test validation happens before the blob is written."""
        with pytest.raises(ShareValidationError):
            await share_service.upload(title="", file=make_file())
        assert blob_store.objects == {}

    async def test_blob_discarded_when_record_fails(
        self,
        share_service: ShareService,
        share_store: ShareStore,
        blob_store: InMemoryBlobStore,
        monkeypatch,
    ):
        """Test a stored blob is removed if its record cannot be created."""

        async def failing_create(*args, **kwargs):
            raise StoreError("Database operation failed", "create")

        monkeypatch.setattr(share_store, "create", failing_create)

        with pytest.raises(StoreError):
            await share_service.upload(title="doc", file=make_file())
        assert blob_store.objects == {}

    async def test_record_error_wins_over_discard_failure(
        self,
        share_service: ShareService,
        share_store: ShareStore,
        blob_store: InMemoryBlobStore,
        monkeypatch,
    ):
        """Test the original error propagates even if cleanup fails."""

        async def failing_create(*args, **kwargs):
            raise StoreError("Database operation failed", "create")

        async def failing_delete(path: str) -> None:
            raise BlobStoreError("unreachable", "delete", path)

        monkeypatch.setattr(share_store, "create", failing_create)
        monkeypatch.setattr(blob_store, "delete", failing_delete)

        with pytest.raises(StoreError):
            await share_service.upload(title="doc", file=make_file())

    async def test_blob_store_failure_creates_no_record(
        self, share_service: ShareService, share_store: ShareStore, blob_store, monkeypatch
    ):
        """Test a failed blob write leaves no record behind."""

        async def failing_put(*args, **kwargs):
            raise BlobStoreError("unreachable", "put")

        monkeypatch.setattr(blob_store, "put", failing_put)

        with pytest.raises(BlobStoreError):
            await share_service.upload(title="doc", file=make_file())
        assert (await share_store.get_stats()).total_shares == 0


@pytest.mark.asyncio
class TestRead:
    """Tests for ShareService.read and open_file."""

    async def test_unprotected_read(self, share_service: ShareService):
        """Test open shares need no password."""
        share = await share_service.upload(title="open", text="hi")
        assert (await share_service.read(share.share_id)).content == "hi"

    async def test_password_required(self, share_service: ShareService):
        """Test protected shares demand a password."""
        share = await share_service.upload(title="secret", text="hi", password="pw")
        with pytest.raises(PasswordRequiredError):
            await share_service.read(share.share_id)

    async def test_password_invalid(self, share_service: ShareService):
        """Test a wrong password is refused."""
        share = await share_service.upload(title="secret", text="hi", password="pw")
        with pytest.raises(PasswordInvalidError):
            await share_service.read(share.share_id, "nope")

    async def test_password_correct(self, share_service: ShareService):
        """Test the right password reveals the content."""
        share = await share_service.upload(title="secret", text="hi", password="pw")
        assert (await share_service.read(share.share_id, "pw")).content == "hi"

    async def test_open_file_of_text_share(self, share_service: ShareService):
        """Test a share without a file has nothing to download."""
        share = await share_service.upload(title="open", text="hi")
        with pytest.raises(ShareNotFoundError):
            await share_service.open_file(share.share_id)

    async def test_open_file_streams_private_store(self, share_service: ShareService):
        """Test private stores yield no redirect URL."""
        share = await share_service.upload(title="doc", file=make_file())
        target = await share_service.open_file(share.share_id)

        assert target.redirect_url is None
        assert await target.store.fetch(target.blob_ref.external_path) == b"x" * 16


@pytest.mark.asyncio
class TestListing:
    """Tests for listing and previews."""

    async def test_preview_truncates_text(self, share_service: ShareService):
        """Test text previews are cut at the preview length."""
        share = await share_service.upload(title="long", text="a" * 50)
        preview = share_service.preview(share)

        assert preview["textPreview"] == "a" * 20 + "..."
        assert preview["hasText"] is True
        assert preview["isProtected"] is False

    async def test_protected_preview_hides_content(self, share_service: ShareService):
        """Test protected shares show their title but no text or file details."""
        share = await share_service.upload(
            title="secret", text="classified", password="pw", file=make_file()
        )
        preview = share_service.preview(share)

        assert preview["title"] == "secret"
        assert preview["isProtected"] is True
        assert preview["textPreview"] is None
        assert preview["originalFileName"] is None
        assert preview["fileSize"] is None
        assert preview["hasFile"] is True

    async def test_limit_is_clamped(self, share_service: ShareService):
        """Test page sizes are bounded to 1..100."""
        await share_service.upload(title="one", text="1")
        assert (await share_service.list_page(1, 1000)).page_size == 100
        assert (await share_service.list_page(1, 0)).page_size == 1
