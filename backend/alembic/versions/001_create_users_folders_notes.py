"""Create users, folders and notes tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the three tables with their ownership foreign keys, the folder
       tree constraints, and the GIN full-text index used by note search.
How:   PostgreSQL-specific features: gen_random_uuid(), partial unique index,
       NULLS NOT DISTINCT (PostgreSQL 15+), expression GIN index.

Rollback: downgrade() drops all three tables (destructive, all data is lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("email", sa.String(255), nullable=False, comment="Stored lower-cased"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="bcrypt digest"),
        sa.Column("full_name", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── folders ───────────────────────────────────────────────────────────
    op.create_table(
        "folders",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.String(20), server_default=sa.text("'#3B82F6'"), nullable=False),
        sa.Column("icon", sa.String(50), server_default=sa.text("'folder'"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("position", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("is_default", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["folders.id"], ondelete="CASCADE"),
        sa.CheckConstraint("id != parent_id", name="folders_no_self_parent"),
        sa.CheckConstraint(
            "length(name) > 0 AND length(name) <= 100", name="folders_name_length"
        ),
        sa.UniqueConstraint(
            "user_id",
            "parent_id",
            "name",
            name="folders_unique_name_per_parent",
            postgresql_nulls_not_distinct=True,
        ),
    )
    op.create_index("folders_user_id_idx", "folders", ["user_id"])
    op.create_index("folders_parent_id_idx", "folders", ["parent_id"])
    op.create_index("folders_position_idx", "folders", ["user_id", "parent_id", "position"])
    op.create_index(
        "folders_one_default_per_user",
        "folders",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_default"),
    )

    # ── notes ─────────────────────────────────────────────────────────────
    op.create_table(
        "notes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("folder_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_pinned", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("pinned_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("word_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["folder_id"], ["folders.id"], ondelete="SET NULL"),
        sa.CheckConstraint("length(trim(title)) > 0", name="notes_title_not_empty"),
        sa.CheckConstraint("length(trim(content)) > 0", name="notes_content_not_empty"),
        sa.CheckConstraint(
            "(is_pinned AND pinned_at IS NOT NULL) OR (NOT is_pinned AND pinned_at IS NULL)",
            name="notes_pinned_at_matches_flag",
        ),
    )
    op.create_index("notes_user_updated_idx", "notes", ["user_id", sa.text("updated_at DESC")])
    op.create_index("notes_folder_id_idx", "notes", ["folder_id"])
    op.create_index("notes_pinned_idx", "notes", ["user_id", "is_pinned", "pinned_at"])

    # Must match the expression NoteService searches with, or the planner ignores it
    op.execute(
        "CREATE INDEX notes_search_idx ON notes "
        "USING GIN (to_tsvector('english', title || ' ' || content))"
    )


def downgrade() -> None:
    """Drop all tables, dependents first."""
    op.execute("DROP INDEX IF EXISTS notes_search_idx")
    op.drop_table("notes")
    op.drop_table("folders")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
