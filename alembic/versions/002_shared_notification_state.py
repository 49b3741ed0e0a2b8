"""add cache_group_versions and notices tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

Query-cache invalidation and user notices are shared by every worker process
through these tables.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "cache_group_versions",
        sa.Column("group_name", sa.String(length=64), nullable=False),
        sa.Column("version", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("group_name"),
    )
    op.create_table(
        "notices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("level", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("submission_id", sa.String(length=36), nullable=False),
        sa.Column("redirect_to", sa.String(length=255), nullable=True),
        sa.Column("redirect_after", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notices_submission_id", "notices", ["submission_id"])


def downgrade() -> None:
    op.drop_index("ix_notices_submission_id", table_name="notices")
    op.drop_table("notices")
    op.drop_table("cache_group_versions")
