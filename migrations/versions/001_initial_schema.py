"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

_BLOB_COLUMNS = (
    "blob_backend",
    "blob_path",
    "blob_public_url",
    "blob_original_name",
    "blob_size_bytes",
    "blob_mime_type",
)


def upgrade() -> None:
    # Create shares table
    op.create_table(
        "shares",
        sa.Column("share_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("blob_backend", sa.String(32), nullable=True),
        sa.Column("blob_path", sa.String(512), nullable=True),
        sa.Column("blob_public_url", sa.String(1024), nullable=True),
        sa.Column("blob_original_name", sa.String(255), nullable=True),
        sa.Column("blob_size_bytes", sa.BigInteger, nullable=True),
        sa.Column("blob_mime_type", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "({}) OR ({})".format(
                " AND ".join(f"{c} IS NULL" for c in _BLOB_COLUMNS),
                " AND ".join(f"{c} IS NOT NULL" for c in _BLOB_COLUMNS),
            ),
            name="ck_shares_blob_all_or_nothing",
        ),
        sa.CheckConstraint(
            "content IS NOT NULL OR blob_path IS NOT NULL", name="ck_shares_has_payload"
        ),
    )
    # Reaper scans by expiry, listing orders by creation
    op.create_index("idx_shares_expires_at", "shares", ["expires_at"])
    op.create_index("idx_shares_created_at", "shares", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_shares_created_at", "shares")
    op.drop_index("idx_shares_expires_at", "shares")
    op.drop_table("shares")
