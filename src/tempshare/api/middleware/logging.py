"""Request logging middleware."""

import time
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from tempshare.observability.metrics import record_http_request

logger = structlog.get_logger("tempshare.api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs every HTTP request with its outcome.

    One line per request at INFO, WARNING for 4xx and ERROR for 5xx.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log request/response."""
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        record_http_request(request.method, response.status_code, duration)
        self._log_request(request, response, duration * 1000)

        return response

    def _log_request(self, request: Request, response: Response, duration_ms: float) -> None:
        """Log the completed request."""
        status_code = response.status_code
        if status_code >= 500:
            log = logger.error
        elif status_code >= 400:
            log = logger.warning
        else:
            log = logger.info

        log(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            client_ip=request.client.host if request.client else None,
            rate_limit_key=getattr(request.state, "rate_limit_key", None),
            user_agent=request.headers.get("User-Agent"),
        )
