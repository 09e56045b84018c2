"""Quota enforcement middleware.

Every request is counted against the global ceiling and, when it belongs to
an endpoint class, against that class's tier as well. Both must admit the
request. Admitted requests beyond a tier's delay threshold are slowed down
before being served. Rejected requests get a 429 with a retry hint.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, NoReturn

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from tempshare.core.exceptions import QuotaExceededError
from tempshare.observability.metrics import record_quota_decision
from tempshare.security.config import QuotaConfig
from tempshare.security.fingerprint import Fingerprinter, RequestTraits
from tempshare.security.quota import QuotaDecision, QuotaPolicy, QuotaTier, QuotaTracker

if TYPE_CHECKING:
    from fastapi import Request, Response

logger = structlog.get_logger("tempshare.security.rate_limiter")

Sleep = Callable[[float], Awaitable[None]]

_ADMIN_PATHS = ("/cleanup", "/cleanup/stats", "/rate-limit/stats")


def classify_request(method: str, path: str, api_prefix: str = "/api") -> QuotaTier | None:
    """Map a request to the quota tier of its endpoint class.

    Returns:
        The tier, or None if only the global ceiling applies
    """
    if path == "/health" or path.startswith("/health/"):
        return QuotaTier.HEALTH

    if not path.startswith(api_prefix + "/"):
        return None

    route = path[len(api_prefix) :].rstrip("/")
    if route == "/upload":
        return QuotaTier.UPLOAD if method == "POST" else None
    if route == "/all":
        return QuotaTier.LISTING
    if route in _ADMIN_PATHS:
        return QuotaTier.ADMIN

    segments = [s for s in route.split("/") if s]
    if method in ("GET", "HEAD"):
        if len(segments) == 2 and segments[0] == "file":
            return QuotaTier.DOWNLOAD
        if len(segments) == 1:
            return QuotaTier.DOWNLOAD
    return None


def _is_preflight(request: "Request") -> bool:
    """CORS preflights are answered by the CORS layer and never counted."""
    return request.method == "OPTIONS" and "access-control-request-method" in request.headers


class QuotaMiddleware(BaseHTTPMiddleware):
    """Middleware that enforces tiered per-device quotas.

    Example:
        tracker = QuotaTracker()
        app.add_middleware(
            QuotaMiddleware,
            tracker=tracker,
            config=QuotaConfig.from_settings(settings),
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        tracker: QuotaTracker,
        config: QuotaConfig,
        sleep: Sleep | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application
            tracker: Shared quota state
            config: Policies and classification rules
            sleep: Coroutine used to apply graduated delay
        """
        super().__init__(app)
        self.tracker = tracker
        self.config = config
        self.fingerprinter = Fingerprinter(config.trust_proxy_headers, config.trusted_proxies)
        self._sleep = sleep or asyncio.sleep

    def _is_exempt(self, path: str) -> bool:
        """Check if a path is exempt from quotas."""
        if path in self.config.exempt_paths:
            return True
        return any(path.startswith(exempt + "/") for exempt in self.config.exempt_paths)

    def _policies_for(self, request: "Request") -> list[QuotaPolicy]:
        policies = [self.config.policy(QuotaTier.GLOBAL)]
        tier = classify_request(request.method, request.url.path, self.config.api_prefix)
        if tier is not None:
            policies.append(self.config.policy(tier))
        return policies

    async def dispatch(
        self,
        request: "Request",
        call_next: Callable[["Request"], Awaitable["Response"]],
    ) -> "Response":
        """Count the request, then serve, delay or reject it."""
        if (
            not self.config.enabled
            or self._is_exempt(request.url.path)
            or _is_preflight(request)
        ):
            return await call_next(request)

        key = self.fingerprinter.rate_limit_key(RequestTraits.from_request(request))
        request.state.rate_limit_key = key

        admitted: list[tuple[QuotaPolicy, QuotaDecision]] = []
        for policy in self._policies_for(request):
            decision = self.tracker.check_and_increment(key, policy)
            record_quota_decision(policy.name, decision.outcome.value)
            if not decision.admitted:
                self._reject(request, key, policy, decision)
            admitted.append((policy, decision))

        delay_ms = max(decision.delay_ms for _, decision in admitted)
        if delay_ms > 0:
            logger.info("quota_delay", rate_limit_key=key, delay_ms=delay_ms)
            await self._sleep(delay_ms / 1000)

        try:
            response = await call_next(request)
        except Exception:
            self._refund(key, admitted, 500)
            raise

        self._refund(key, admitted, response.status_code)

        if self.config.include_in_headers:
            _, decision = admitted[-1]
            for header, value in self._build_rate_limit_headers(decision).items():
                response.headers[header] = value

        return response

    def _refund(
        self,
        key: str,
        admitted: list[tuple[QuotaPolicy, QuotaDecision]],
        status_code: int,
    ) -> None:
        for policy, decision in admitted:
            if policy.should_refund(status_code):
                self.tracker.refund(key, policy, decision.window_start)

    def _reject(
        self,
        request: "Request",
        key: str,
        policy: QuotaPolicy,
        decision: QuotaDecision,
    ) -> NoReturn:
        """Reject with 429 Too Many Requests.

        Raises:
            QuotaExceededError: Always; rendered by the error handling middleware
        """
        logger.warning(
            "quota_rejected",
            rate_limit_key=key,
            policy=policy.name,
            path=request.url.path,
            retry_after=decision.retry_after_seconds,
        )
        raise QuotaExceededError(
            policy.message,
            policy=policy.name,
            retry_after=decision.retry_after_seconds,
            headers=self._build_rate_limit_headers(decision),
        )

    def _build_rate_limit_headers(self, decision: QuotaDecision) -> dict[str, str]:
        """Build rate limit response headers.

        Uses standard headers as per IETF draft:
        https://datatracker.ietf.org/doc/html/draft-ietf-httpapi-ratelimit-headers
        """
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": str(int(decision.reset_at)),
        }
        if decision.retry_after_seconds > 0:
            headers["Retry-After"] = str(decision.retry_after_seconds)
        return headers
