"""Core exceptions for share storage, access control and quotas."""

from uuid import UUID

from tempshare.utils.exceptions import TempShareError


class ShareValidationError(TempShareError):
    """Raised when a share request is malformed.

    Covers a missing title, missing content, oversized files and
    identifiers that are not in the expected format.

    Attributes:
        field: The offending input field, if known
    """

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        return self.args[0]


class ShareNotFoundError(TempShareError):
    """Raised when a share is absent or past its expiry instant.

    Both cases are the same failure to callers of the store. The
    ``expired`` flag only lets the HTTP layer answer 410 instead of 404.

    Attributes:
        share_id: The identifier that was looked up
        expired: True if the record still exists but has expired
    """

    def __init__(self, share_id: UUID | str, expired: bool = False):
        message = "Content has expired" if expired else "Content not found or has expired"
        super().__init__(message)
        self.share_id = share_id
        self.expired = expired

    def __str__(self) -> str:
        return self.args[0]


class PasswordRequiredError(TempShareError):
    """Raised when a protected share is read without a password."""

    def __init__(self, share_id: UUID | str):
        super().__init__("This content is password protected")
        self.share_id = share_id

    def __str__(self) -> str:
        return self.args[0]


class PasswordInvalidError(TempShareError):
    """Raised when the password supplied for a protected share is wrong."""

    def __init__(self, share_id: UUID | str):
        super().__init__("Incorrect password")
        self.share_id = share_id

    def __str__(self) -> str:
        return self.args[0]


class QuotaExceededError(TempShareError):
    """Raised when a client exhausts a quota tier.

    Attributes:
        policy: Name of the quota tier that rejected the request
        retry_after: Seconds until the client may retry
        headers: Rate limit headers to send with the 429
    """

    def __init__(
        self,
        message: str,
        policy: str,
        retry_after: int,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.policy = policy
        self.retry_after = retry_after
        self.headers = headers or {}

    def __str__(self) -> str:
        return f"QuotaExceededError({self.policy}): {self.args[0]} (retry_after={self.retry_after})"


class BlobStoreError(TempShareError):
    """Raised when the object store rejects or fails an operation.

    Attributes:
        operation: The attempted operation (put, delete, fetch)
        path: The object path involved, if any
    """

    def __init__(self, message: str, operation: str, path: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.path = path

    def __str__(self) -> str:
        return f"BlobStoreError({self.operation}, {self.path}): {self.args[0]}"


class StoreError(TempShareError):
    """Raised when the metadata database is unavailable or fails.

    Attributes:
        operation: The store operation that failed
    """

    def __init__(self, message: str, operation: str):
        super().__init__(message)
        self.operation = operation

    def __str__(self) -> str:
        return f"StoreError({self.operation}): {self.args[0]}"
