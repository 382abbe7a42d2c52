"""Review system schema

Revision ID: 001_review_schema
Revises:
Create Date: 2026-10-19

Creates the following tables:
- folders: User folders grouping notes
- notes: Notes owning questions; plain text feeds AI reviews
- questions: Spaced repetition questions with SM-2 schedule state
- ai_review_sessions: AI review attempts and their pipeline status
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001_review_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create folders table
    op.create_table(
        "folders",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_folders_user_id", "folders", ["user_id"])

    # Create notes table
    op.create_table(
        "notes",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("folder_id", sa.String(64), nullable=True),
        sa.Column("title", sa.String(500), nullable=False, server_default=""),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("content_plain_text", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notes_user_id", "notes", ["user_id"])
    op.create_index("ix_notes_folder_id", "notes", ["folder_id"])

    # Create questions table
    op.create_table(
        "questions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("note_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=False),
        sa.Column("time_stamp", sa.BigInteger(), nullable=False),
        sa.Column("repetition", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ease_factor", sa.Float(), nullable=False, server_default="2.5"),
        sa.Column("next_review", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_review", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "history",
            postgresql.JSON(astext_type=sa.Text()),
            nullable=False,
            server_default="[]",
        ),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["note_id"], ["notes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_questions_note_id", "questions", ["note_id"])
    op.create_index("ix_questions_user_id", "questions", ["user_id"])
    op.create_index("ix_questions_next_review", "questions", ["next_review"])

    # Create ai_review_sessions table
    op.create_table(
        "ai_review_sessions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("source_id", sa.String(64), nullable=False),
        sa.Column("source_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="pending"),
        sa.Column("mode", sa.String(30), nullable=False),
        sa.Column("difficulty", sa.String(20), nullable=True),
        sa.Column("question_count", sa.Integer(), nullable=False, server_default="5"),
        sa.Column(
            "generated_questions",
            postgresql.JSON(astext_type=sa.Text()),
            nullable=False,
            server_default="[]",
        ),
        sa.Column("result", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        sa.Column("model_version", sa.String(100), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "requested_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("questions_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ai_review_sessions_user_id", "ai_review_sessions", ["user_id"])
    op.create_index("ix_ai_review_sessions_source_id", "ai_review_sessions", ["source_id"])
    op.create_index("ix_ai_review_sessions_status", "ai_review_sessions", ["status"])
    op.create_index(
        "ix_ai_review_sessions_user_requested",
        "ai_review_sessions",
        ["user_id", "requested_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_ai_review_sessions_user_requested", table_name="ai_review_sessions")
    op.drop_index("ix_ai_review_sessions_status", table_name="ai_review_sessions")
    op.drop_index("ix_ai_review_sessions_source_id", table_name="ai_review_sessions")
    op.drop_index("ix_ai_review_sessions_user_id", table_name="ai_review_sessions")
    op.drop_table("ai_review_sessions")

    op.drop_index("ix_questions_next_review", table_name="questions")
    op.drop_index("ix_questions_user_id", table_name="questions")
    op.drop_index("ix_questions_note_id", table_name="questions")
    op.drop_table("questions")

    op.drop_index("ix_notes_folder_id", table_name="notes")
    op.drop_index("ix_notes_user_id", table_name="notes")
    op.drop_table("notes")

    op.drop_index("ix_folders_user_id", table_name="folders")
    op.drop_table("folders")
