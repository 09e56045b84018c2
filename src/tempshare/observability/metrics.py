"""Prometheus metrics for tempshare.

This module provides Prometheus metrics for monitoring:
- Uploads and share reads by outcome
- Quota decisions by tier and outcome
- Reaper runs, reaped shares and blobs, per-item errors
- HTTP request counts and latency
"""

from __future__ import annotations

from dataclasses import dataclass

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest

__all__ = [
    "CONTENT_TYPE_LATEST",
    "UPLOAD_COUNT",
    "UPLOAD_SIZE",
    "SHARE_READ_COUNT",
    "QUOTA_DECISION_COUNT",
    "REAPER_RUN_COUNT",
    "REAPER_RUN_DURATION",
    "REAPED_SHARES",
    "REAPED_BLOBS",
    "REAPER_ITEM_ERRORS",
    "REAPER_LAST_SUCCESS",
    "HTTP_REQUEST_COUNT",
    "HTTP_REQUEST_DURATION",
    "get_metrics",
    "record_upload",
    "record_share_read",
    "record_quota_decision",
    "record_reaper_run",
    "record_reaper_item_error",
    "record_http_request",
]


@dataclass
class MetricsConfig:
    """Configuration for Prometheus metrics.

    Attributes:
        prefix: Prefix for all metric names.
        histogram_buckets: Histogram buckets for latency metrics.
    """

    prefix: str = "tempshare"
    histogram_buckets: tuple[float, ...] = (
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        30.0,
    )


_config = MetricsConfig()

# ============================================================================
# Share Metrics
# ============================================================================

UPLOAD_COUNT = Counter(
    f"{_config.prefix}_uploads_total",
    "Total number of uploads by outcome",
    ["status", "has_file"],
)

UPLOAD_SIZE = Histogram(
    f"{_config.prefix}_upload_size_bytes",
    "Size of uploaded files",
    buckets=(1024, 16384, 131072, 1048576, 8388608, 33554432, 52428800),
)

SHARE_READ_COUNT = Counter(
    f"{_config.prefix}_share_reads_total",
    "Share reads by outcome",
    ["kind", "outcome"],
)

# ============================================================================
# Quota Metrics
# ============================================================================

QUOTA_DECISION_COUNT = Counter(
    f"{_config.prefix}_quota_decisions_total",
    "Quota decisions by tier and outcome",
    ["tier", "outcome"],
)

# ============================================================================
# Reaper Metrics
# ============================================================================

REAPER_RUN_COUNT = Counter(
    f"{_config.prefix}_reaper_runs_total",
    "Reaper runs by result",
    ["result"],
)

REAPER_RUN_DURATION = Histogram(
    f"{_config.prefix}_reaper_run_duration_seconds",
    "Duration of reaper runs",
    buckets=_config.histogram_buckets,
)

REAPED_SHARES = Counter(
    f"{_config.prefix}_reaped_shares_total",
    "Expired share records deleted by the reaper",
)

REAPED_BLOBS = Counter(
    f"{_config.prefix}_reaped_blobs_total",
    "Blobs deleted by the reaper",
)

REAPER_ITEM_ERRORS = Counter(
    f"{_config.prefix}_reaper_item_errors_total",
    "Per-item reaper failures",
    ["stage"],
)

REAPER_LAST_SUCCESS = Gauge(
    f"{_config.prefix}_reaper_last_success_timestamp_seconds",
    "Unix time of the last reaper run without errors",
)

# ============================================================================
# HTTP Metrics
# ============================================================================

HTTP_REQUEST_DURATION = Histogram(
    f"{_config.prefix}_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "status_code"],
    buckets=_config.histogram_buckets,
)

HTTP_REQUEST_COUNT = Counter(
    f"{_config.prefix}_http_requests_total",
    "Total HTTP requests",
    ["method", "status_code"],
)


def get_metrics() -> bytes:
    """Get current metrics in Prometheus format.

    Returns:
        Prometheus metrics as bytes.
    """
    return generate_latest(REGISTRY)


# ============================================================================
# Convenience Functions for Recording Metrics
# ============================================================================


def record_upload(status: str, has_file: bool, size_bytes: int | None = None) -> None:
    """Record an upload attempt.

    Args:
        status: "success" or "failure".
        has_file: Whether a file was attached.
        size_bytes: File size, if a file was stored.
    """
    UPLOAD_COUNT.labels(status=status, has_file=str(has_file).lower()).inc()
    if size_bytes is not None:
        UPLOAD_SIZE.observe(size_bytes)


def record_share_read(kind: str, outcome: str) -> None:
    """Record a share read (kind is "share" or "file")."""
    SHARE_READ_COUNT.labels(kind=kind, outcome=outcome).inc()


def record_quota_decision(tier: str, outcome: str) -> None:
    QUOTA_DECISION_COUNT.labels(tier=tier, outcome=outcome).inc()


def record_reaper_run(
    result: str,
    duration_seconds: float,
    deleted_shares: int = 0,
    deleted_files: int = 0,
    finished_at: float | None = None,
) -> None:
    """Record a completed reaper run.

    Args:
        result: "success", "partial", "aborted" or "skipped".
        duration_seconds: Wall time of the run.
        deleted_shares: Records removed.
        deleted_files: Blobs removed.
        finished_at: Unix time the run ended, set on clean runs.
    """
    REAPER_RUN_COUNT.labels(result=result).inc()
    if result == "skipped":
        return
    REAPER_RUN_DURATION.observe(duration_seconds)
    REAPED_SHARES.inc(deleted_shares)
    REAPED_BLOBS.inc(deleted_files)
    if result == "success" and finished_at is not None:
        REAPER_LAST_SUCCESS.set(finished_at)


def record_reaper_item_error(stage: str) -> None:
    """Record a per-item reaper failure ("blob" or "record")."""
    REAPER_ITEM_ERRORS.labels(stage=stage).inc()


def record_http_request(method: str, status_code: int, duration_seconds: float) -> None:
    """Record HTTP request metrics."""
    HTTP_REQUEST_DURATION.labels(method=method, status_code=str(status_code)).observe(
        duration_seconds
    )
    HTTP_REQUEST_COUNT.labels(method=method, status_code=str(status_code)).inc()
