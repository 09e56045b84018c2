"""API request and response schemas."""

from tempshare.api.schemas.errors import APIError, ErrorCode
from tempshare.api.schemas.health import (
    ComponentHealth,
    HealthDetailResponse,
    HealthResponse,
    HealthStatus,
)
from tempshare.api.schemas.shares import (
    CleanupResponse,
    Pagination,
    ShareFile,
    ShareListResponse,
    SharePreview,
    ShareResponse,
    UploadData,
    UploadResponse,
)

__all__ = [
    "APIError",
    "CleanupResponse",
    "ComponentHealth",
    "ErrorCode",
    "HealthDetailResponse",
    "HealthResponse",
    "HealthStatus",
    "Pagination",
    "ShareFile",
    "ShareListResponse",
    "SharePreview",
    "ShareResponse",
    "UploadData",
    "UploadResponse",
]
