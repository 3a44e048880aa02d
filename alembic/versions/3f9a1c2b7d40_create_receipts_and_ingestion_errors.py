"""create_receipts_and_ingestion_errors

Revision ID: 3f9a1c2b7d40
Revises:
Create Date: 2025-07-02 10:14:37.512904

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f9a1c2b7d40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "receipts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("store_name", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("date", sa.String(), nullable=False),
        sa.Column("subtotal", sa.Float(), nullable=True),
        sa.Column("tax", sa.Float(), nullable=True),
        sa.Column("total", sa.Float(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("image_path", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_receipts_id"), "receipts", ["id"], unique=False)
    op.create_index(op.f("ix_receipts_store_name"), "receipts", ["store_name"], unique=False)
    op.create_index(op.f("ix_receipts_date"), "receipts", ["date"], unique=False)
    op.create_index(op.f("ix_receipts_image_path"), "receipts", ["image_path"], unique=False)

    op.create_table(
        "ingestion_errors",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("file_path", sa.String(), nullable=False),
        sa.Column("error", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_ingestion_errors_id"), "ingestion_errors", ["id"], unique=False)
    op.create_index(
        op.f("ix_ingestion_errors_file_path"), "ingestion_errors", ["file_path"], unique=False
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f("ix_ingestion_errors_file_path"), table_name="ingestion_errors")
    op.drop_index(op.f("ix_ingestion_errors_id"), table_name="ingestion_errors")
    op.drop_table("ingestion_errors")
    op.drop_index(op.f("ix_receipts_image_path"), table_name="receipts")
    op.drop_index(op.f("ix_receipts_date"), table_name="receipts")
    op.drop_index(op.f("ix_receipts_store_name"), table_name="receipts")
    op.drop_index(op.f("ix_receipts_id"), table_name="receipts")
    op.drop_table("receipts")
