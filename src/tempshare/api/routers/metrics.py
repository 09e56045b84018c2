"""Prometheus scrape endpoint."""

from fastapi import APIRouter
from fastapi.responses import Response

from tempshare.observability.metrics import CONTENT_TYPE_LATEST, get_metrics

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)
