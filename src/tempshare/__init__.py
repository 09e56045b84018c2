"""tempshare: temporary text and file sharing with expiring links."""

__version__ = "0.1.0"
