"""
Noteworthy Backend - Folder SQLAlchemy Model
==============================================

What:  ORM model representing the `folders` table, a per-user tree.
Who:   Owned exclusively by FolderService; NoteService only reads it to
       check that a target folder belongs to the caller.

Tree representation:
    Each row stores a `parent_id` pointer (NULL for a root folder). There is
    no embedded recursion: ancestors are found by walking parent pointers,
    which FolderService bounds by the owner's folder count.

Table constraints:
    - folders_no_self_parent:           id != parent_id
    - folders_unique_name_per_parent:   (user_id, parent_id, name); NULL parents
      compare equal on PostgreSQL 15+ so root siblings are unique too
    - parent_id → folders.id ON DELETE CASCADE (descendants go with the parent)
    - folders_one_default_per_user:     partial unique index on user_id WHERE is_default
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
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from noteworthy.database import Base
from noteworthy.models.user import utcnow

FOLDER_NAME_MAX_LENGTH = 100
DEFAULT_FOLDER_COLOR = "#3B82F6"
DEFAULT_FOLDER_ICON = "folder"


class Folder(Base):
    """An organizational node; folders never own note content."""

    __tablename__ = "folders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(FOLDER_NAME_MAX_LENGTH), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DEFAULT_FOLDER_COLOR,
        server_default=text(f"'{DEFAULT_FOLDER_COLOR}'"),
    )
    icon: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_FOLDER_ICON,
        server_default=text(f"'{DEFAULT_FOLDER_ICON}'"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("folders.id", ondelete="CASCADE"),
        nullable=True,
    )

    # Sibling order within (user_id, parent_id); gaps are allowed
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    is_default: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
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
        CheckConstraint("id != parent_id", name="folders_no_self_parent"),
        CheckConstraint(
            f"length(name) > 0 AND length(name) <= {FOLDER_NAME_MAX_LENGTH}",
            name="folders_name_length",
        ),
        UniqueConstraint(
            "user_id",
            "parent_id",
            "name",
            name="folders_unique_name_per_parent",
            postgresql_nulls_not_distinct=True,
        ),
        Index("folders_user_id_idx", "user_id"),
        Index("folders_parent_id_idx", "parent_id"),
        Index("folders_position_idx", "user_id", "parent_id", "position"),
        Index(
            "folders_one_default_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Folder(id={self.id}, name='{self.name}', parent={self.parent_id}, "
            f"default={self.is_default})>"
        )
