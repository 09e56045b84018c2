"""Tests for the share record store and its expiry rules."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from tempshare.core.exceptions import ShareNotFoundError, ShareValidationError, StoreError
from tempshare.db.repositories.share import ShareRepository
from tempshare.shares.store import ShareStore
from tempshare.storage.types import BlobRef

TTL = timedelta(hours=3)


def make_blob_ref(path: str = "1718000000000-1-report.pdf") -> BlobRef:
    return BlobRef(
        backend="memory",
        external_path=path,
        public_url=f"memory://blobs/{path}",
        original_name="report.pdf",
        size_bytes=2048,
        mime_type="application/pdf",
    )


@pytest.mark.asyncio
class TestCreate:
    """Tests for ShareStore.create."""

    async def test_expiry_is_creation_plus_ttl(self, share_store: ShareStore, clock):
        """Test expires_at is fixed at created_at + TTL."""
        share = await share_store.create("notes", content="hello")

        assert share.created_at == clock()
        assert share.expires_at == clock() + TTL

    async def test_title_is_trimmed(self, share_store: ShareStore):
        """Test surrounding whitespace is removed from titles."""
        share = await share_store.create("  notes  ", content="hello")
        assert share.title == "notes"

    async def test_missing_title_is_rejected(self, share_store: ShareStore):
        """Test blank titles fail validation."""
        with pytest.raises(ShareValidationError) as exc_info:
            await share_store.create("   ", content="hello")
        assert exc_info.value.field == "title"

    async def test_long_title_is_rejected(self, share_store: ShareStore):
        """Test titles over the maximum length fail validation."""
        with pytest.raises(ShareValidationError):
            await share_store.create("x" * 101, content="hello")

    async def test_title_at_limit_is_accepted(self, share_store: ShareStore):
        """Test a title of exactly the maximum length is fine."""
        share = await share_store.create("x" * 100, content="hello")
        assert len(share.title) == 100

    async def test_payload_is_required(self, share_store: ShareStore):
        """Test a share needs text or a file."""
        with pytest.raises(ShareValidationError) as exc_info:
            await share_store.create("empty")
        assert exc_info.value.field == "content"

    async def test_file_only_share(self, share_store: ShareStore):
        """Test a share may carry only a file."""
        share = await share_store.create("doc", blob_ref=make_blob_ref())

        assert share.content is None
        assert share.blob_ref == make_blob_ref()

    async def test_password_hash_is_stored(self, share_store: ShareStore):
        """Test protected shares keep their hash."""
        share = await share_store.create("secret", content="x", password_hash="pbkdf2_sha256$1$a$b")
        assert share.is_protected


@pytest.mark.asyncio
class TestGet:
    """Tests for ShareStore.get and its expiry boundary."""

    async def test_live_share_is_returned(self, share_store: ShareStore, clock):
        """Test a share can be read just before expiry."""
        created = await share_store.create("notes", content="hello")
        clock.advance(TTL.total_seconds() - 1)

        share = await share_store.get(created.share_id)
        assert share.content == "hello"

    async def test_share_at_expiry_instant_is_gone(self, share_store: ShareStore, clock):
        """Test a share is expired exactly at expires_at."""
        created = await share_store.create("notes", content="hello")
        clock.advance(TTL.total_seconds())

        with pytest.raises(ShareNotFoundError) as exc_info:
            await share_store.get(created.share_id)
        assert exc_info.value.expired is True

    async def test_expired_share_hidden_before_reaping(self, share_store: ShareStore, clock):
        """Test reads never return an expired record even if it still exists."""
        created = await share_store.create("notes", content="hello")
        clock.advance(TTL.total_seconds() + 60)

        with pytest.raises(ShareNotFoundError):
            await share_store.get(created.share_id)
        assert [s.share_id for s in await share_store.find_expired()] == [created.share_id]

    async def test_unknown_share(self, share_store: ShareStore):
        """Test unknown ids are not found, not expired."""
        with pytest.raises(ShareNotFoundError) as exc_info:
            await share_store.get(uuid4())
        assert exc_info.value.expired is False


@pytest.mark.asyncio
class TestDelete:
    """Tests for ShareStore.delete."""

    async def test_delete_removes_record(self, share_store: ShareStore):
        """Test deleting a record makes it unreadable."""
        share = await share_store.create("notes", content="hello")

        assert await share_store.delete(share.share_id) is True
        with pytest.raises(ShareNotFoundError):
            await share_store.get(share.share_id)

    async def test_delete_is_idempotent(self, share_store: ShareStore):
        """Test deleting a missing record is not an error."""
        assert await share_store.delete(uuid4()) is False


@pytest.mark.asyncio
class TestListing:
    """Tests for ShareStore.list_page."""

    async def test_newest_first_and_live_only(self, share_store: ShareStore, clock):
        """Test listings are newest first and skip expired shares."""
        old = await share_store.create("old", content="1")
        clock.advance(TTL.total_seconds() / 2)
        middle = await share_store.create("middle", content="2")
        clock.advance(60)
        newest = await share_store.create("newest", content="3")
        clock.advance(TTL.total_seconds() / 2)

        page = await share_store.list_page(1, 10)

        ids = [s.share_id for s in page.items]
        assert ids == [newest.share_id, middle.share_id]
        assert old.share_id not in ids
        assert page.total == 2

    async def test_pagination(self, share_store: ShareStore, clock):
        """Test pages, totals and has_more."""
        for i in range(5):
            await share_store.create(f"share {i}", content="x")
            clock.advance(1)

        first = await share_store.list_page(1, 2)
        last = await share_store.list_page(3, 2)

        assert [s.title for s in first.items] == ["share 4", "share 3"]
        assert first.has_more is True
        assert first.total_pages == 3
        assert [s.title for s in last.items] == ["share 0"]
        assert last.has_more is False


@pytest.mark.asyncio
class TestExpiredQueries:
    """Tests for find_expired and stats."""

    async def test_find_expired_oldest_first_with_limit(self, share_store: ShareStore, clock):
        """Test expired shares come back in expiry order, limited."""
        first = await share_store.create("a", content="1")
        clock.advance(10)
        second = await share_store.create("b", content="2")
        clock.advance(10)
        await share_store.create("c", content="3")
        clock.advance(TTL.total_seconds() - 5)

        expired = await share_store.find_expired()
        assert [s.share_id for s in expired] == [first.share_id, second.share_id]
        assert len(await share_store.find_expired(limit=1)) == 1

    async def test_stats(self, share_store: ShareStore, clock):
        """Test stats count total, recent, expired and file shares."""
        await share_store.create("old", content="1")
        clock.advance(2 * 3600)
        await share_store.create("recent", blob_ref=make_blob_ref())
        clock.advance(3600)

        stats = await share_store.get_stats()

        assert stats.total_shares == 2
        assert stats.expired_shares == 1
        assert stats.recent_shares == 1
        assert stats.shares_with_files == 1
        payload = stats.to_dict()
        assert set(payload) == {
            "totalShares",
            "recentShares",
            "expiredShares",
            "sharesWithFiles",
            "timestamp",
        }


@pytest.mark.asyncio
class TestStoreErrors:
    """Tests for database failure wrapping."""

    async def test_database_errors_become_store_error(
        self, share_store: ShareStore, monkeypatch
    ):
        """Test SQLAlchemy failures surface as StoreError."""

        async def broken(self, *args, **kwargs):
            raise OperationalError("DELETE", {}, Exception("database is locked"))

        monkeypatch.setattr(ShareRepository, "delete_by_pk", broken)

        with pytest.raises(StoreError) as exc_info:
            await share_store.delete(uuid4())
        assert exc_info.value.operation == "delete"
