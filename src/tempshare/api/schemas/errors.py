"""Error response schemas for API."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from tempshare.api.schemas.base import CamelModel


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Request errors
    INVALID_REQUEST = "INVALID_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    EXPIRED = "EXPIRED"

    # Access errors
    PASSWORD_REQUIRED = "PASSWORD_REQUIRED"
    PASSWORD_INVALID = "PASSWORD_INVALID"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"

    # Dependency errors
    STORAGE_ERROR = "STORAGE_ERROR"
    DATABASE_UNAVAILABLE = "DATABASE_UNAVAILABLE"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIError(CamelModel):
    """Standardized API error response format.

    All API errors return this format for consistency. ``password_required``
    and ``retry_after`` are only present on 401 and 429 responses.
    """

    success: bool = False
    error: str = Field(..., description="Human-readable error message")
    error_code: str = Field(..., description="Machine-readable error code")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")
    request_id: str = Field(..., description="Request ID for tracing (UUIDv7)")
    timestamp: datetime = Field(..., description="When the error occurred")
    password_required: bool | None = None
    retry_after: int | None = None

    model_config = {"json_schema_extra": {"example": {
        "success": False,
        "error": "This content is password protected",
        "errorCode": "PASSWORD_REQUIRED",
        "requestId": "019478f2-1234-7000-8000-abcdef123456",
        "timestamp": "2026-01-30T12:00:00Z",
        "passwordRequired": True,
    }}}

    def to_content(self) -> dict[str, Any]:
        """JSON body with the optional access fields dropped when unset."""
        exclude = {
            name
            for name in ("password_required", "retry_after")
            if getattr(self, name) is None
        }
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)
