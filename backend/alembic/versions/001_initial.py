"""Initial schema: generated documents, job audit records and content hashes.

Revision ID: 001
Revises:
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Latest generated llms.txt per target URL
    op.create_table(
        "llms_entries",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_llms_entries_url", "llms_entries", ["url"], unique=True)

    # Job audit records
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_jobs_url", "jobs", ["url"])

    # Content hashes for change detection
    op.create_table(
        "content_hashes",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("content_length", sa.Integer, nullable=False, server_default="0"),
        sa.Column("change_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_changed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("last_checked", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_changed", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_content_hashes_url", "content_hashes", ["url"], unique=True)
    op.create_index(
        "ix_content_hashes_is_changed",
        "content_hashes",
        ["is_changed"],
        postgresql_where=sa.text("is_changed = true"),
    )


def downgrade() -> None:
    op.drop_table("content_hashes")
    op.drop_table("jobs")
    op.drop_table("llms_entries")
