"""Administrative endpoints for the reaper and quota tracker."""

from typing import Any

from fastapi import APIRouter

from tempshare.api.dependencies import Quotas, ReaperDep
from tempshare.api.schemas.shares import CleanupResponse

router = APIRouter(prefix="/api", tags=["admin"])


@router.get("/cleanup/stats", summary="Share and reaper statistics")
async def cleanup_stats(reaper: ReaperDep) -> dict[str, Any]:
    """Counts of total, recent, expired and file-backed shares plus reaper status."""
    return {"success": True, "stats": await reaper.get_stats()}


@router.post("/cleanup", response_model=CleanupResponse, summary="Run the reaper now")
async def run_cleanup(reaper: ReaperDep) -> CleanupResponse:
    """Reap expired shares immediately.

    Returns a skipped summary if a run is already in progress.
    """
    summary = await reaper.run_once(trigger="manual")
    return CleanupResponse.model_validate(summary.to_dict())


@router.get("/rate-limit/stats", summary="Active quota violations")
async def rate_limit_stats(tracker: Quotas) -> dict[str, Any]:
    """Clients that hit a quota within the current window of that quota."""
    return {"success": True, **tracker.summarize_violations()}
