"""Share endpoints: upload, read, file download and listing."""

from typing import Annotated
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import RedirectResponse, Response

from tempshare.api.dependencies import AppSettings, Shares
from tempshare.api.schemas.shares import (
    Pagination,
    ShareFile,
    ShareListResponse,
    SharePreview,
    ShareResponse,
    UploadData,
    UploadResponse,
)
from tempshare.core.exceptions import ShareValidationError
from tempshare.db.models.share import Share
from tempshare.shares.service import ShareService, UploadedFile

router = APIRouter(prefix="/api", tags=["shares"])

SHARE_LINK_PREFIX = "/view"


def parse_share_id(raw: str) -> UUID:
    """Parse a share ID from the URL.

    Raises:
        ShareValidationError: If the value is not a UUID
    """
    try:
        return UUID(raw)
    except ValueError:
        raise ShareValidationError("Invalid share ID format", field="id") from None


async def _read_upload(file: UploadFile | None, max_bytes: int) -> UploadedFile | None:
    """Read an uploaded file, refusing anything over ``max_bytes``."""
    if file is None or not file.filename:
        return None
    data = await file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ShareValidationError("File too large", field="file")
    return UploadedFile(
        data=data,
        filename=file.filename,
        mime_type=file.content_type or "application/octet-stream",
    )


def _file_url(service: ShareService, share: Share) -> str | None:
    blob_ref = share.blob_ref
    if blob_ref is None:
        return None
    if service.blobs.for_ref(blob_ref).serves_publicly:
        return blob_ref.public_url
    return f"{router.prefix}/file/{share.share_id}"


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Share text or a file",
)
async def upload(
    service: Shares,
    settings: AppSettings,
    title: Annotated[str | None, Form()] = None,
    text: Annotated[str | None, Form()] = None,
    password: Annotated[str | None, Form()] = None,
    file: Annotated[UploadFile | None, File()] = None,
) -> UploadResponse:
    """Create a share that expires after the configured TTL."""
    uploaded = await _read_upload(file, settings.MAX_UPLOAD_BYTES)
    share = await service.upload(title=title, text=text, password=password, file=uploaded)

    blob_ref = share.blob_ref
    return UploadResponse(
        id=str(share.share_id),
        share_link=f"{SHARE_LINK_PREFIX}/{share.share_id}",
        expires_at=share.expires_at,
        data=UploadData(
            title=share.title,
            has_text=bool(share.content),
            has_file=blob_ref is not None,
            original_file_name=blob_ref.original_name if blob_ref else None,
            file_size=blob_ref.size_bytes if blob_ref else None,
            mime_type=blob_ref.mime_type if blob_ref else None,
        ),
    )


@router.get(
    "/all",
    response_model=ShareListResponse,
    summary="List live shares",
)
async def list_shares(
    service: Shares,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    limit: Annotated[int, Query(ge=1, le=100, description="Shares per page")] = 20,
) -> ShareListResponse:
    """Newest live shares with short previews."""
    result = await service.list_page(page, limit)
    return ShareListResponse(
        shares=[SharePreview.model_validate(service.preview(s)) for s in result.items],
        pagination=Pagination(
            current_page=result.page,
            total_pages=result.total_pages,
            total_shares=result.total,
            has_next=result.has_more,
            has_prev=result.page > 1,
        ),
    )


@router.get(
    "/file/{share_id}",
    summary="Download a share's file",
    responses={302: {"description": "Redirect to the public object URL"}},
)
async def download_file(
    share_id: str,
    service: Shares,
    password: Annotated[str | None, Query()] = None,
) -> Response:
    """Redirect to the stored file, or stream it when the store is private."""
    target = await service.open_file(parse_share_id(share_id), password)

    if target.redirect_url is not None:
        return RedirectResponse(target.redirect_url, status_code=status.HTTP_302_FOUND)

    data = await target.store.fetch(target.blob_ref.external_path)
    filename = quote(target.blob_ref.original_name)
    return Response(
        content=data,
        media_type=target.blob_ref.mime_type,
        headers={"Content-Disposition": f"inline; filename*=UTF-8''{filename}"},
    )


@router.get(
    "/{share_id}",
    response_model=ShareResponse,
    response_model_exclude_none=True,
    summary="Read a share",
)
async def get_share(
    share_id: str,
    service: Shares,
    password: Annotated[str | None, Query()] = None,
) -> ShareResponse:
    """Return a live share, enforcing its password."""
    share = await service.read(parse_share_id(share_id), password)

    blob_ref = share.blob_ref
    file = None
    if blob_ref is not None:
        file = ShareFile(
            url=_file_url(service, share),
            original_name=blob_ref.original_name,
            size=blob_ref.size_bytes,
            mime_type=blob_ref.mime_type,
        )

    return ShareResponse(
        id=str(share.share_id),
        title=share.title,
        created_at=share.created_at,
        expires_at=share.expires_at,
        text=share.content,
        file=file,
    )
