"""Background deletion of expired shares."""

from tempshare.reaper.service import Reaper, ReaperConfig, ReaperState, ReapSummary

__all__ = ["ReapSummary", "Reaper", "ReaperConfig", "ReaperState"]
