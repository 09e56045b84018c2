"""Error handling middleware for mapping exceptions to HTTP responses."""

from datetime import UTC, datetime
from typing import Any, Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from tempshare.api.schemas.errors import APIError, ErrorCode
from tempshare.core.exceptions import (
    BlobStoreError,
    PasswordInvalidError,
    PasswordRequiredError,
    QuotaExceededError,
    ShareNotFoundError,
    ShareValidationError,
    StoreError,
)

logger = structlog.get_logger("tempshare.api.errors")


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware that catches exceptions and returns standardized error responses.

    Maps domain exceptions to appropriate HTTP status codes and formats
    all errors using the APIError schema.
    """

    def __init__(self, app, debug: bool = False) -> None:
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle any exceptions."""
        try:
            return await call_next(request)
        except Exception as exc:
            return self._handle_exception(request, exc)

    def _handle_exception(self, request: Request, exc: Exception) -> JSONResponse:
        """Convert exception to JSON error response."""
        request_id = self._get_request_id(request)
        status_code, error_code, message, details = self._map_exception(exc)

        if status_code >= 500:
            logger.error(
                "request_failed",
                path=request.url.path,
                error_code=error_code,
                error_type=type(exc).__name__,
                error=str(exc),
                exc_info=not isinstance(exc, (BlobStoreError, StoreError)),
            )

        error = APIError(
            error=message,
            error_code=error_code,
            details=details,
            request_id=request_id,
            timestamp=datetime.now(UTC),
            password_required=(
                True if isinstance(exc, (PasswordRequiredError, PasswordInvalidError)) else None
            ),
            retry_after=exc.retry_after if isinstance(exc, QuotaExceededError) else None,
        )

        headers = {"X-Request-ID": request_id}
        if isinstance(exc, QuotaExceededError):
            headers.update(exc.headers)
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(status_code=status_code, content=error.to_content(), headers=headers)

    def _get_request_id(self, request: Request) -> str:
        """Extract request ID from state or generate placeholder."""
        return str(getattr(request.state, "request_id", "unknown"))

    def _map_exception(self, exc: Exception) -> tuple[int, str, str, dict[str, Any] | None]:
        """Map exception to (status_code, error_code, message, details)."""
        if isinstance(exc, ShareValidationError):
            return (
                400,
                ErrorCode.VALIDATION_ERROR.value,
                str(exc),
                {"field": exc.field} if exc.field else None,
            )

        if isinstance(exc, ShareNotFoundError):
            if exc.expired:
                return (410, ErrorCode.EXPIRED.value, str(exc), None)
            return (404, ErrorCode.NOT_FOUND.value, str(exc), None)

        if isinstance(exc, PasswordRequiredError):
            return (401, ErrorCode.PASSWORD_REQUIRED.value, str(exc), None)

        if isinstance(exc, PasswordInvalidError):
            return (401, ErrorCode.PASSWORD_INVALID.value, str(exc), None)

        if isinstance(exc, QuotaExceededError):
            return (
                429,
                ErrorCode.QUOTA_EXCEEDED.value,
                exc.args[0],
                {"policy": exc.policy},
            )

        if isinstance(exc, BlobStoreError):
            return (
                502,
                ErrorCode.STORAGE_ERROR.value,
                "File storage is unavailable, please try again later",
                {"operation": exc.operation} if self.debug else None,
            )

        if isinstance(exc, StoreError):
            return (
                503,
                ErrorCode.DATABASE_UNAVAILABLE.value,
                "Service temporarily unavailable, please try again later",
                {"operation": exc.operation} if self.debug else None,
            )

        # Validation errors (Pydantic)
        if isinstance(exc, ValidationError):
            return (
                422,
                ErrorCode.VALIDATION_ERROR.value,
                "Request validation failed",
                {"errors": exc.errors(include_url=False)},
            )

        # Generic exceptions
        return (
            500,
            ErrorCode.INTERNAL_ERROR.value,
            "Internal server error",
            {"type": type(exc).__name__} if self.debug else None,
        )
