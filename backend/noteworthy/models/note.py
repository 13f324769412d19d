"""
Noteworthy Backend - Note SQLAlchemy Model
============================================

What:  ORM model representing the `notes` table.
Who:   Owned by NoteService; FolderService detaches notes when it deletes folders.

Column notes:
    - title:       Caller-supplied or synthesized at creation; never re-derived on edit
    - word_count:  Derived from content; recomputed in the same UPDATE as the content
    - is_pinned / pinned_at: Always written together (pinned_at NULL iff not pinned)
    - view_count:  Only ever changed by an atomic `view_count = view_count + 1`
    - folder_id:   Nullable; ON DELETE SET NULL so notes outlive their folder

Query Patterns:
    - List a user's notes: WHERE user_id = :uid ORDER BY updated_at DESC
      → notes_user_updated_idx
    - Notes in a folder: WHERE folder_id = :fid → notes_folder_id_idx
    - Full-text search: GIN index on to_tsvector(title || content), created by the
      Alembic migration (PostgreSQL only)
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from noteworthy.database import Base
from noteworthy.models.user import utcnow

NOTE_TITLE_MAX_LENGTH = 200


class Note(Base):
    """A short text document owned by one user."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(NOTE_TITLE_MAX_LENGTH), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    folder_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
    )

    is_pinned: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    pinned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    view_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    word_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("length(trim(title)) > 0", name="notes_title_not_empty"),
        CheckConstraint("length(trim(content)) > 0", name="notes_content_not_empty"),
        CheckConstraint(
            "(is_pinned AND pinned_at IS NOT NULL) OR (NOT is_pinned AND pinned_at IS NULL)",
            name="notes_pinned_at_matches_flag",
        ),
        Index("notes_user_updated_idx", "user_id", "updated_at"),
        Index("notes_folder_id_idx", "folder_id"),
        Index("notes_pinned_idx", "user_id", "is_pinned", "pinned_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, title='{self.title}', folder={self.folder_id}, "
            f"pinned={self.is_pinned})>"
        )
