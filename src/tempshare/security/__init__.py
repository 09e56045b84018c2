"""Abuse control for anonymous clients.

This module provides:
- Device fingerprinting and rate limit keys
- Tiered fixed-window quotas with graduated delay
- Quota enforcement middleware
- Filename sanitization
"""

from .config import QuotaConfig, policy_from_settings
from .fingerprint import (
    Fingerprinter,
    RequestTraits,
    generate_device_fingerprint,
    resolve_client_address,
)
from .quota import (
    QuotaDecision,
    QuotaOutcome,
    QuotaPolicy,
    QuotaState,
    QuotaTier,
    QuotaTracker,
)
from .rate_limiter import QuotaMiddleware, classify_request
from .sanitization import sanitize_filename

__all__ = [
    # Fingerprinting
    "Fingerprinter",
    "RequestTraits",
    "generate_device_fingerprint",
    "resolve_client_address",
    # Quotas
    "QuotaConfig",
    "QuotaDecision",
    "QuotaOutcome",
    "QuotaPolicy",
    "QuotaState",
    "QuotaTier",
    "QuotaTracker",
    "policy_from_settings",
    # Middleware
    "QuotaMiddleware",
    "classify_request",
    # Sanitization
    "sanitize_filename",
]
