"""Configuration module for tempshare."""

from tempshare.config.settings import BlobBackend, QuotaPolicySettings, QuotaSettings, Settings, get_settings

__all__ = ["Settings", "get_settings", "BlobBackend", "QuotaPolicySettings", "QuotaSettings"]
