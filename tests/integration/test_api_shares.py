"""Integration tests for the share API."""

import pytest
from httpx import AsyncClient

from tempshare.storage.memory import InMemoryBlobStore

TTL_SECONDS = 3 * 60 * 60


async def upload(client: AsyncClient, **form) -> dict:
    files = form.pop("files", None)
    response = await client.post("/api/upload", data=form, files=files)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
class TestShareLifecycle:
    """End-to-end share lifecycle tests."""

    async def test_text_share_expires(self, test_client: AsyncClient, clock):
        """Test a text share is readable until its TTL elapses."""
        created = await upload(test_client, title="t", text="hello")
        assert created["success"] is True
        assert created["shareLink"] == f"/view/{created['id']}"

        response = await test_client.get(f"/api/{created['id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["text"] == "hello"
        assert body["title"] == "t"
        assert "file" not in body

        clock.advance(TTL_SECONDS + 1)
        response = await test_client.get(f"/api/{created['id']}")
        assert response.status_code in (404, 410)
        assert response.json()["success"] is False

    async def test_password_protected_share(self, test_client: AsyncClient):
        """Test protected shares need the right password."""
        created = await upload(test_client, title="t", text="classified", password="secret")
        share_url = f"/api/{created['id']}"

        missing = await test_client.get(share_url)
        assert missing.status_code == 401
        assert missing.json()["passwordRequired"] is True
        assert missing.json()["errorCode"] == "PASSWORD_REQUIRED"

        wrong = await test_client.get(share_url, params={"password": "wrong"})
        assert wrong.status_code == 401
        assert wrong.json()["errorCode"] == "PASSWORD_INVALID"

        right = await test_client.get(share_url, params={"password": "secret"})
        assert right.status_code == 200
        assert right.json()["text"] == "classified"

    async def test_file_share_reaped_with_blob(
        self, test_client: AsyncClient, blob_store: InMemoryBlobStore, clock
    ):
        """Test the reaper removes an expired share's blob and record."""
        created = await upload(
            test_client,
            title="doc",
            files={"file": ("report.pdf", b"%PDF-1.7", "application/pdf")},
        )
        assert created["data"]["hasFile"] is True
        assert created["data"]["originalFileName"] == "report.pdf"
        [path] = list(blob_store.objects)

        clock.advance(TTL_SECONDS)
        cleanup = await test_client.post("/api/cleanup")
        assert cleanup.status_code == 200
        assert cleanup.json()["deletedFiles"] == 1

        assert not await blob_store.exists(path)
        response = await test_client.get(f"/api/{created['id']}")
        assert response.status_code == 404

    async def test_upload_quota(self, test_client: AsyncClient, sleeps):
        """Test the eleventh upload in a window is rejected."""
        for i in range(10):
            await upload(test_client, title=f"t{i}", text="x")

        response = await test_client.post("/api/upload", data={"title": "t10", "text": "x"})

        assert response.status_code == 429
        assert response.json()["retryAfter"] == 900
        assert response.headers["Retry-After"] == "900"
        assert sleeps.calls == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0]


@pytest.mark.asyncio
class TestUpload:
    """Tests for POST /api/upload."""

    async def test_missing_title(self, test_client: AsyncClient):
        """Test uploads without a title are rejected."""
        response = await test_client.post("/api/upload", data={"text": "x"})
        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_ERROR"

    async def test_missing_payload(self, test_client: AsyncClient):
        """Test uploads without text or file are rejected."""
        response = await test_client.post("/api/upload", data={"title": "t"})
        assert response.status_code == 400

    async def test_file_too_large(self, test_client: AsyncClient, blob_store: InMemoryBlobStore):
        """Test oversized files are refused before storage."""
        response = await test_client.post(
            "/api/upload",
            data={"title": "big"},
            files={"file": ("big.bin", b"\0" * (1024 * 1024 + 1), "application/octet-stream")},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "File too large"
        assert blob_store.objects == {}

    async def test_failed_uploads_do_not_use_quota(self, test_client: AsyncClient):
        """Test rejected uploads are refunded."""
        for _ in range(12):
            assert (await test_client.post("/api/upload", data={"title": "t"})).status_code == 400
        await upload(test_client, title="t", text="x")


@pytest.mark.asyncio
class TestReadShare:
    """Tests for GET /api/{id} and /api/file/{id}."""

    async def test_invalid_id(self, test_client: AsyncClient):
        """Test malformed ids are a client error."""
        response = await test_client.get("/api/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid share ID format"

    async def test_unknown_id(self, test_client: AsyncClient):
        """Test unknown ids are not found."""
        response = await test_client.get("/api/0190a3c4-0000-7000-8000-000000000000")
        assert response.status_code == 404
        assert response.json()["errorCode"] == "NOT_FOUND"

    async def test_expired_before_reaping_is_gone(self, test_client: AsyncClient, clock):
        """Test expired records answer 410 until the reaper removes them."""
        created = await upload(test_client, title="t", text="x")
        clock.advance(TTL_SECONDS)

        response = await test_client.get(f"/api/{created['id']}")
        assert response.status_code == 410
        assert response.json()["errorCode"] == "EXPIRED"

    async def test_file_metadata_and_download(self, test_client: AsyncClient):
        """Test private blob stores are streamed through the API."""
        created = await upload(
            test_client,
            title="doc",
            text="see attached",
            files={"file": ("notes.txt", b"hello file", "text/plain")},
        )

        share = (await test_client.get(f"/api/{created['id']}")).json()
        assert share["file"]["originalName"] == "notes.txt"
        assert share["file"]["size"] == 10
        assert share["file"]["url"] == f"/api/file/{created['id']}"

        download = await test_client.get(share["file"]["url"])
        assert download.status_code == 200
        assert download.content == b"hello file"
        assert download.headers["content-type"].startswith("text/plain")
        assert "notes.txt" in download.headers["content-disposition"]

    async def test_download_requires_password(self, test_client: AsyncClient):
        """Test protected files need the password too."""
        created = await upload(
            test_client,
            title="doc",
            password="pw",
            files={"file": ("notes.txt", b"hello file", "text/plain")},
        )

        assert (await test_client.get(f"/api/file/{created['id']}")).status_code == 401
        response = await test_client.get(f"/api/file/{created['id']}", params={"password": "pw"})
        assert response.status_code == 200

    async def test_download_of_text_share(self, test_client: AsyncClient):
        """Test text-only shares have no file."""
        created = await upload(test_client, title="t", text="x")
        assert (await test_client.get(f"/api/file/{created['id']}")).status_code == 404


@pytest.mark.asyncio
class TestListShares:
    """Tests for GET /api/all."""

    async def test_listing(self, test_client: AsyncClient, clock):
        """Test listings are newest first with pagination."""
        for i in range(3):
            await upload(test_client, title=f"share {i}", text="x" * 150)
            clock.advance(1)

        response = await test_client.get("/api/all", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert [s["title"] for s in body["shares"]] == ["share 2", "share 1"]
        assert body["shares"][0]["textPreview"] == "x" * 100 + "..."
        assert body["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalShares": 3,
            "hasNext": True,
            "hasPrev": False,
        }

    async def test_protected_shares_hide_content(self, test_client: AsyncClient):
        """Test listings never leak protected content."""
        await upload(test_client, title="secret", text="classified", password="pw")

        [entry] = (await test_client.get("/api/all")).json()["shares"]
        assert entry["title"] == "secret"
        assert entry["isProtected"] is True
        assert entry["textPreview"] is None
        assert "classified" not in str(entry)

    async def test_expired_shares_not_listed(self, test_client: AsyncClient, clock):
        """Test listings only include live shares."""
        await upload(test_client, title="t", text="x")
        clock.advance(TTL_SECONDS)

        body = (await test_client.get("/api/all")).json()
        assert body["shares"] == []
        assert body["pagination"]["totalShares"] == 0

    async def test_limit_bounds(self, test_client: AsyncClient):
        """Test out of range limits are rejected."""
        assert (await test_client.get("/api/all", params={"limit": 101})).status_code == 422
        assert (await test_client.get("/api/all", params={"page": 0})).status_code == 422
