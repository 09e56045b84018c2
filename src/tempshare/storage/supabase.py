"""Supabase Storage blob store.

Talks to the Supabase Storage REST API directly with httpx. Transport
errors and 5xx responses are retried with exponential backoff, client
errors fail immediately.

Endpoints used:
    POST   /storage/v1/object/{bucket}/{path}         upload
    DELETE /storage/v1/object/{bucket}                 delete ({"prefixes": [path]})
    GET    /storage/v1/object/{bucket}/{path}          download
    HEAD   /storage/v1/object/{bucket}/{path}          existence check
    GET    /storage/v1/object/public/{bucket}/{path}   public URL
"""

import time
from typing import Any
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from tempshare.core.exceptions import BlobStoreError
from tempshare.core.logging import log_external_call
from tempshare.storage.types import StoredBlob

logger = structlog.get_logger("tempshare.storage.supabase")


class TransientStorageError(Exception):
    """A failure worth retrying (network error or 5xx)."""

    def __init__(self, message: str, response: httpx.Response | None = None) -> None:
        super().__init__(message)
        self.response = response


def _is_not_found(response: httpx.Response) -> bool:
    """Supabase reports missing objects as 404, or as 400 with a not_found body."""
    if response.status_code == 404:
        return True
    if response.status_code != 400:
        return False
    try:
        body = response.json()
    except ValueError:
        return False
    return str(body.get("statusCode")) == "404" or body.get("error") == "not_found"


class SupabaseBlobStore:
    """Blob store backed by a Supabase Storage bucket.

    Example:
        store = SupabaseBlobStore(
            url="https://xyz.supabase.co",
            key=settings.get_supabase_key().get_secret_value(),
            bucket="uploads",
        )
        blob = await store.put(b"...", "1718000000000-1-report.pdf", "application/pdf")
        await store.aclose()
    """

    backend = "supabase"
    serves_publicly = True

    def __init__(
        self,
        url: str,
        key: str,
        bucket: str = "uploads",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            url: Supabase project URL
            key: Service role key (or anon key)
            bucket: Storage bucket name
            client: Preconfigured HTTP client (tests pass a MockTransport client)
            timeout: Request timeout in seconds
            max_attempts: Attempts per request including the first
            retry_wait: Wait strategy between attempts
        """
        self.base_url = url.rstrip("/")
        self.bucket = bucket
        self._key = key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)

    def _object_url(self, path: str = "") -> str:
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"
        return f"{url}/{quote(path)}" if path else url

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._key}", "apikey": self._key}
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, url: str, operation: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transient failures.

        Returns:
            The final response, which may still be a 4xx

        Raises:
            BlobStoreError: If every attempt failed transiently
        """
        start = time.perf_counter()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=self._retry_wait,
                retry=retry_if_exception_type(TransientStorageError),
                reraise=True,
            ):
                with attempt:
                    try:
                        response = await self._client.request(method, url, **kwargs)
                    except httpx.TransportError as e:
                        raise TransientStorageError(f"{type(e).__name__}: {e}") from e
                    if response.status_code >= 500:
                        raise TransientStorageError(
                            f"Storage returned {response.status_code}", response
                        )
        except TransientStorageError as e:
            log_external_call(
                logger,
                "supabase_storage",
                operation,
                (time.perf_counter() - start) * 1000,
                success=False,
                blob_path=path,
                error=str(e),
            )
            raise BlobStoreError(str(e), operation, path) from e

        log_external_call(
            logger,
            "supabase_storage",
            operation,
            (time.perf_counter() - start) * 1000,
            success=response.is_success,
            blob_path=path,
            status_code=response.status_code,
        )
        return response

    async def put(self, data: bytes, name: str, mime_type: str) -> StoredBlob:
        response = await self._request(
            "POST",
            self._object_url(name),
            "put",
            name,
            content=data,
            headers=self._headers(
                {
                    "Content-Type": mime_type or "application/octet-stream",
                    "x-upsert": "false",
                    "cache-control": "max-age=3600",
                }
            ),
        )
        if not response.is_success:
            raise BlobStoreError(
                f"Upload rejected with status {response.status_code}: {response.text}",
                "put",
                name,
            )
        return StoredBlob(path=name, public_url=self.public_url(name))

    async def delete(self, path: str) -> None:
        response = await self._request(
            "DELETE",
            self._object_url(),
            "delete",
            path,
            json={"prefixes": [path]},
            headers=self._headers(),
        )
        if response.is_success or _is_not_found(response):
            return
        raise BlobStoreError(
            f"Delete rejected with status {response.status_code}: {response.text}",
            "delete",
            path,
        )

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    async def fetch(self, path: str) -> bytes:
        response = await self._request(
            "GET", self._object_url(path), "fetch", path, headers=self._headers()
        )
        if _is_not_found(response):
            raise BlobStoreError("Object not found", "fetch", path)
        if not response.is_success:
            raise BlobStoreError(f"Download failed with status {response.status_code}", "fetch", path)
        return response.content

    async def exists(self, path: str) -> bool:
        response = await self._request(
            "HEAD", self._object_url(path), "exists", path, headers=self._headers()
        )
        if response.is_success:
            return True
        if response.status_code in (400, 404):
            return False
        raise BlobStoreError(f"Existence check failed with status {response.status_code}", "exists", path)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
