"""Utility modules for tempshare."""

from tempshare.utils.exceptions import ConfigurationError, TempShareError

__all__ = [
    "TempShareError",
    "ConfigurationError",
]
