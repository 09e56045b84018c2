"""Value types shared by blob stores and share records."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BlobRef:
    """Reference from a share record to its stored file.

    Every field is required, a record either has a complete reference or
    none at all. ``backend`` names the store that holds the object, so the
    serving path dispatches on it instead of inspecting the URL.

    Attributes:
        backend: Name of the blob store holding the object
        external_path: Object path inside that store
        public_url: URL the object can be fetched from
        original_name: Filename supplied by the uploader
        size_bytes: Object size in bytes
        mime_type: Content type supplied by the uploader
    """

    backend: str
    external_path: str
    public_url: str
    original_name: str
    size_bytes: int
    mime_type: str


@dataclass(frozen=True)
class StoredBlob:
    """Result of a successful put."""

    path: str
    public_url: str
