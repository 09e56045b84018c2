"""Share record model for tempshare database."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from uuid_utils.compat import uuid7

from tempshare.storage.types import BlobRef

from .base import Base, PortableUUID, UTCDateTime

# Titles are validated against MAX_TITLE_LENGTH, which may not exceed this
TITLE_COLUMN_LENGTH = 100

_BLOB_COLUMNS = (
    "blob_backend",
    "blob_path",
    "blob_public_url",
    "blob_original_name",
    "blob_size_bytes",
    "blob_mime_type",
)


def _all_or_nothing(columns: tuple[str, ...]) -> str:
    none_set = " AND ".join(f"{c} IS NULL" for c in columns)
    all_set = " AND ".join(f"{c} IS NOT NULL" for c in columns)
    return f"({none_set}) OR ({all_set})"


class Share(Base):
    """A piece of shared content with a fixed lifetime.

    ``expires_at`` is set once at creation to ``created_at + TTL`` and never
    changes. The index on it is what the reaper scans.
    """

    __tablename__ = "shares"

    share_id: Mapped[UUID] = mapped_column(PortableUUID(), primary_key=True, default=uuid7)
    title: Mapped[str] = mapped_column(String(TITLE_COLUMN_LENGTH), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Blob reference (all or nothing)
    blob_backend: Mapped[str | None] = mapped_column(String(32), nullable=True)
    blob_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    blob_public_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    blob_original_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    blob_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    blob_mime_type: Mapped[str | None] = mapped_column(String(255), nullable=True)

    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("idx_shares_expires_at", "expires_at"),
        Index("idx_shares_created_at", "created_at"),
        CheckConstraint(_all_or_nothing(_BLOB_COLUMNS), name="ck_shares_blob_all_or_nothing"),
        CheckConstraint(
            "content IS NOT NULL OR blob_path IS NOT NULL", name="ck_shares_has_payload"
        ),
    )

    @property
    def blob_ref(self) -> BlobRef | None:
        """The stored file reference, or None for text-only shares."""
        if self.blob_path is None:
            return None
        return BlobRef(
            backend=self.blob_backend,
            external_path=self.blob_path,
            public_url=self.blob_public_url,
            original_name=self.blob_original_name,
            size_bytes=self.blob_size_bytes,
            mime_type=self.blob_mime_type,
        )

    @blob_ref.setter
    def blob_ref(self, ref: BlobRef | None) -> None:
        self.blob_backend = ref.backend if ref else None
        self.blob_path = ref.external_path if ref else None
        self.blob_public_url = ref.public_url if ref else None
        self.blob_original_name = ref.original_name if ref else None
        self.blob_size_bytes = ref.size_bytes if ref else None
        self.blob_mime_type = ref.mime_type if ref else None

    @property
    def is_protected(self) -> bool:
        return self.password_hash is not None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def __repr__(self) -> str:
        return f"<Share(share_id={self.share_id}, title={self.title!r}, expires_at={self.expires_at})>"
