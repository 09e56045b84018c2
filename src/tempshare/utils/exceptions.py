"""Custom exceptions for tempshare."""


class TempShareError(Exception):
    """Base exception for all tempshare errors."""

    pass


class ConfigurationError(TempShareError):
    """Error in configuration or settings."""

    pass
