"""Health check response schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from tempshare.api.schemas.base import CamelModel


class HealthStatus(str, Enum):
    """Health status indicators."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(CamelModel):
    """Liveness response with process uptime and memory."""

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(..., description="Check timestamp")
    uptime: float = Field(..., description="Seconds since the application started")
    memory: dict[str, Any] = Field(default_factory=dict, description="Process memory usage")

    model_config = {"json_schema_extra": {"example": {
        "status": "healthy",
        "version": "0.1.0",
        "timestamp": "2026-01-30T12:00:00Z",
        "uptime": 3600.5,
        "memory": {"maxRssBytes": 73400320},
    }}}


class ComponentHealth(CamelModel):
    """Individual component health status."""

    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None


class HealthDetailResponse(CamelModel):
    """Health check response with component status."""

    status: HealthStatus
    version: str
    timestamp: datetime
    database: ComponentHealth = Field(..., description="Database health")
