"""Observability for tempshare: Prometheus metrics.

Usage:
    from tempshare.observability import get_metrics, record_upload

    record_upload("success", has_file=True, size_bytes=1024)
    payload = get_metrics()
"""

from tempshare.observability.metrics import (
    CONTENT_TYPE_LATEST,
    get_metrics,
    record_http_request,
    record_quota_decision,
    record_reaper_item_error,
    record_reaper_run,
    record_share_read,
    record_upload,
)

__all__ = [
    "CONTENT_TYPE_LATEST",
    "get_metrics",
    "record_http_request",
    "record_quota_decision",
    "record_reaper_item_error",
    "record_reaper_run",
    "record_share_read",
    "record_upload",
]
