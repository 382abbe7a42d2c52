"""Review schedule on notes and folders

Revision ID: 002_source_review_schedule
Revises: 001_review_schema
Create Date: 2026-10-19

Adds SM-2 schedule columns to notes and folders. Completed AI reviews map
their score onto a rating and advance the schedule of the reviewed note or
folder.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "002_source_review_schedule"
down_revision = "001_review_schema"
branch_labels = None
depends_on = None


SOURCE_TABLES = ("notes", "folders")


def upgrade() -> None:
    for table in SOURCE_TABLES:
        op.add_column(
            table, sa.Column("repetition", sa.Integer(), nullable=False, server_default="0")
        )
        op.add_column(
            table, sa.Column("interval", sa.Integer(), nullable=False, server_default="0")
        )
        op.add_column(
            table, sa.Column("ease_factor", sa.Float(), nullable=False, server_default="2.5")
        )
        op.add_column(
            table, sa.Column("next_review", sa.DateTime(timezone=True), nullable=True)
        )
        op.add_column(
            table, sa.Column("last_review", sa.DateTime(timezone=True), nullable=True)
        )
        op.add_column(
            table,
            sa.Column(
                "review_history",
                postgresql.JSON(astext_type=sa.Text()),
                nullable=False,
                server_default="[]",
            ),
        )


def downgrade() -> None:
    for table in SOURCE_TABLES:
        op.drop_column(table, "review_history")
        op.drop_column(table, "last_review")
        op.drop_column(table, "next_review")
        op.drop_column(table, "ease_factor")
        op.drop_column(table, "interval")
        op.drop_column(table, "repetition")
