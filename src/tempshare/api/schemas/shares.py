"""Share request and response schemas."""

from datetime import datetime
from typing import Any

from pydantic import Field

from tempshare.api.schemas.base import CamelModel


class UploadData(CamelModel):
    title: str
    has_text: bool
    has_file: bool
    original_file_name: str | None = None
    file_size: int | None = None
    mime_type: str | None = None


class UploadResponse(CamelModel):
    """Response to a successful upload."""

    success: bool = True
    id: str
    share_link: str = Field(..., description="Client route that displays the share")
    expires_at: datetime
    data: UploadData


class ShareFile(CamelModel):
    url: str
    original_name: str
    size: int
    mime_type: str


class ShareResponse(CamelModel):
    """A live share as returned to a reader."""

    success: bool = True
    id: str
    title: str
    created_at: datetime
    expires_at: datetime
    text: str | None = None
    file: ShareFile | None = None


class SharePreview(CamelModel):
    """Listing entry; protected shares carry no text or file details."""

    id: str
    title: str
    has_text: bool
    has_file: bool
    is_protected: bool
    original_file_name: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    text_preview: str | None = None
    created_at: datetime
    expires_at: datetime


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_shares: int
    has_next: bool
    has_prev: bool


class ShareListResponse(CamelModel):
    success: bool = True
    shares: list[SharePreview]
    pagination: Pagination


class CleanupResponse(CamelModel):
    """Reaper run summary."""

    success: bool
    deleted_shares: int
    deleted_files: int
    total_expired: int
    errors: list[dict[str, Any]]
    skipped: bool
    aborted: bool
    trigger: str
    started_at: datetime
    duration_ms: float
    timestamp: datetime
