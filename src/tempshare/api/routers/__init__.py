"""API routers."""

from .admin import router as admin_router
from .health import router as health_router
from .metrics import router as metrics_router
from .shares import router as shares_router

__all__ = ["admin_router", "health_router", "metrics_router", "shares_router"]
