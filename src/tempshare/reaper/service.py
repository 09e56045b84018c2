"""Reaper for expired shares.

This module provides the Reaper class that:
- Scans the expiry index for shares at or past their expiry instant
- Deletes each expired share's blob, then its record
- Keeps going when a blob delete fails (an orphaned blob is preferred to a
  record that can never be cleaned up)
- Aborts the rest of a run when the metadata store itself fails
- Runs on a schedule and on demand, never two runs at once
"""

import asyncio
import contextlib
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import structlog

from tempshare.core.exceptions import BlobStoreError, StoreError
from tempshare.db.models.share import Share
from tempshare.observability.metrics import record_reaper_item_error, record_reaper_run
from tempshare.shares.store import ShareStore
from tempshare.storage.registry import BlobStoreRegistry

logger = structlog.get_logger("tempshare.reaper")


class ReaperState(str, Enum):
    """Where the reaper is within a run."""

    IDLE = "idle"
    SCANNING = "scanning"
    DELETING_BLOB = "deleting_blob"
    DELETING_RECORD = "deleting_record"


@dataclass
class ReaperConfig:
    """Configuration for the Reaper."""

    interval_seconds: int = 3600
    """How often the scheduled loop runs."""

    batch_size: int = 100
    """Expired shares fetched per scan."""

    stop_timeout_seconds: float = 30.0
    """How long stop() waits for the in-flight item before cancelling."""


@dataclass
class ReapSummary:
    """Outcome of one reaper run."""

    started_at: datetime
    finished_at: datetime | None = None
    trigger: str = "manual"
    total_expired: int = 0
    deleted_shares: int = 0
    deleted_files: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    skipped: bool = False
    aborted: bool = False
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.aborted and not self.skipped

    @property
    def result(self) -> str:
        """Metric label for the run."""
        if self.skipped:
            return "skipped"
        if self.aborted:
            return "aborted"
        return "partial" if self.errors else "success"

    def to_dict(self) -> dict[str, Any]:
        finished = self.finished_at or self.started_at
        return {
            "success": self.success,
            "deletedShares": self.deleted_shares,
            "deletedFiles": self.deleted_files,
            "totalExpired": self.total_expired,
            "errors": list(self.errors),
            "skipped": self.skipped,
            "aborted": self.aborted,
            "trigger": self.trigger,
            "startedAt": self.started_at.isoformat(),
            "durationMs": round(self.duration_seconds * 1000, 2),
            "timestamp": finished.isoformat(),
        }


class Reaper:
    """Deletes expired shares and their blobs.

    Example:
        reaper = Reaper(store, blobs, ReaperConfig(interval_seconds=3600))
        await reaper.start()
        summary = await reaper.run_once(trigger="manual")
        await reaper.stop()
    """

    def __init__(
        self,
        store: ShareStore,
        blobs: BlobStoreRegistry,
        config: ReaperConfig | None = None,
    ) -> None:
        self.store = store
        self.blobs = blobs
        self.config = config or ReaperConfig()

        self.state = ReaperState.IDLE
        self.last_summary: ReapSummary | None = None
        self._run_lock = asyncio.Lock()

        # Background task
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._stop_event = asyncio.Event()

    @property
    def is_scheduled(self) -> bool:
        return self._running

    async def run_once(self, trigger: str = "manual") -> ReapSummary:
        """Reap every share that is expired now.

        Returns a skipped summary if another run is in progress. Zero
        expired shares is a successful run.
        """
        if self._run_lock.locked():
            logger.info("reaper_run_skipped", trigger=trigger, state=self.state.value)
            summary = ReapSummary(started_at=self.store.now(), trigger=trigger, skipped=True)
            summary.finished_at = summary.started_at
            record_reaper_run(summary.result, 0.0)
            return summary

        async with self._run_lock:
            summary = ReapSummary(started_at=self.store.now(), trigger=trigger)
            start = time.perf_counter()
            logger.info("reaper_run_started", trigger=trigger)
            try:
                await self._run(summary)
            except StoreError as e:
                summary.aborted = True
                summary.errors.append({"stage": e.operation, "error": str(e)})
                logger.error("reaper_run_aborted", trigger=trigger, error=str(e))
            finally:
                self.state = ReaperState.IDLE
                summary.finished_at = self.store.now()
                summary.duration_seconds = time.perf_counter() - start
                self.last_summary = summary

        record_reaper_run(
            summary.result,
            summary.duration_seconds,
            deleted_shares=summary.deleted_shares,
            deleted_files=summary.deleted_files,
            finished_at=summary.finished_at.timestamp(),
        )
        logger.info(
            "reaper_run_finished",
            trigger=trigger,
            total_expired=summary.total_expired,
            deleted_shares=summary.deleted_shares,
            deleted_files=summary.deleted_files,
            errors=len(summary.errors),
            aborted=summary.aborted,
        )
        return summary

    async def _run(self, summary: ReapSummary) -> None:
        seen = set()
        while not self._stop_event.is_set():
            self.state = ReaperState.SCANNING
            batch = [
                share
                for share in await self.store.find_expired(limit=self.config.batch_size)
                if share.share_id not in seen
            ]
            if not batch:
                return

            for share in batch:
                # Finish the current item, never start a new one after stop()
                if self._stop_event.is_set():
                    return
                seen.add(share.share_id)
                summary.total_expired += 1
                await self._reap_one(share, summary)

    async def _reap_one(self, share: Share, summary: ReapSummary) -> None:
        """Delete one share: blob first, then record.

        Raises:
            StoreError: If the record could not be deleted
        """
        share_id = str(share.share_id)
        blob_ref = share.blob_ref

        if blob_ref is not None:
            self.state = ReaperState.DELETING_BLOB
            try:
                await self.blobs.for_ref(blob_ref).delete(blob_ref.external_path)
            except BlobStoreError as e:
                record_reaper_item_error("blob")
                summary.errors.append(
                    {
                        "shareId": share_id,
                        "stage": "blob",
                        "blobPath": blob_ref.external_path,
                        "error": str(e),
                    }
                )
                logger.error(
                    "reaper_blob_delete_failed",
                    share_id=share_id,
                    blob_path=blob_ref.external_path,
                    backend=blob_ref.backend,
                    error=str(e),
                )
            else:
                summary.deleted_files += 1
                logger.debug("reaper_blob_deleted", share_id=share_id, blob_path=blob_ref.external_path)

        self.state = ReaperState.DELETING_RECORD
        try:
            deleted = await self.store.delete(share.share_id)
        except StoreError:
            record_reaper_item_error("record")
            raise

        if deleted:
            summary.deleted_shares += 1
            logger.debug("reaper_share_deleted", share_id=share_id)

    async def get_stats(self) -> dict[str, Any]:
        """Store counters plus reaper status."""
        stats = (await self.store.get_stats()).to_dict()
        stats["reaper"] = {
            "state": self.state.value,
            "scheduled": self._running,
            "intervalMinutes": self.config.interval_seconds / 60,
            "lastRun": self.last_summary.to_dict() if self.last_summary else None,
        }
        return stats

    async def start(self) -> None:
        """Start the scheduled loop. The first run happens after one interval."""
        if self._running:
            return

        self._running = True
        self._stop_event.clear()
        self._task = asyncio.create_task(self._background_loop())
        logger.info("reaper_started", interval_seconds=self.config.interval_seconds)

    async def stop(self) -> None:
        """Stop the scheduled loop, letting an in-flight item finish."""
        self._running = False
        self._stop_event.set()
        if self._task:
            try:
                await asyncio.wait_for(
                    asyncio.shield(self._task), timeout=self.config.stop_timeout_seconds
                )
            except asyncio.TimeoutError:
                self._task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._task
            self._task = None
        logger.info("reaper_stopped")

    async def _background_loop(self) -> None:
        """Run the reaper every interval until stopped."""
        while self._running:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.config.interval_seconds
                )
            if self._stop_event.is_set():
                break
            try:
                await self.run_once(trigger="scheduled")
            except Exception as e:
                # StoreError is handled inside run_once; anything else waits for the next tick
                logger.error("reaper_loop_error", error=str(e), error_type=type(e).__name__)
