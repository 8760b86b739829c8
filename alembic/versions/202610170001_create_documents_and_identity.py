"""create documents and identity account tables

Revision ID: 202610170001
Revises:
Create Date: 2026-10-17 00:00:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610170001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("path", sa.String(length=1024), nullable=False),
        sa.Column("collection", sa.String(length=1024), nullable=False),
        sa.Column("document_id", sa.String(length=255), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("create_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("update_time", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("path"),
    )
    op.create_index(op.f("ix_documents_collection"), "documents", ["collection"], unique=False)

    op.create_table(
        "identity_accounts",
        sa.Column("uid", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=512), nullable=False),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("uid"),
    )
    op.create_index(op.f("ix_identity_accounts_email"), "identity_accounts", ["email"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_identity_accounts_email"), table_name="identity_accounts")
    op.drop_table("identity_accounts")
    op.drop_index(op.f("ix_documents_collection"), table_name="documents")
    op.drop_table("documents")
