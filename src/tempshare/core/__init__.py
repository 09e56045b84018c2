"""Core building blocks: logging, clock, password hashing and domain errors."""

from tempshare.core.exceptions import (
    BlobStoreError,
    PasswordInvalidError,
    PasswordRequiredError,
    QuotaExceededError,
    ShareNotFoundError,
    ShareValidationError,
    StoreError,
)

__all__ = [
    "BlobStoreError",
    "PasswordInvalidError",
    "PasswordRequiredError",
    "QuotaExceededError",
    "ShareNotFoundError",
    "ShareValidationError",
    "StoreError",
]
