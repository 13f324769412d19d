"""
Noteworthy Backend - User SQLAlchemy Model
============================================

What:  ORM model representing the `users` table.
Who:   Used by UserService (registration, login) and by every service that
       re-reads the caller's active flag before touching user-owned rows.

Lifecycle:
    1. Created on registration (email lower-cased, password stored as bcrypt digest)
    2. Soft-disabled by flipping `is_active`; users are never hard-deleted
    3. `password_hash` never leaves the service layer (schemas omit it)
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from noteworthy.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """An account that owns folders and notes."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Stored lower-cased; uniqueness is therefore case-insensitive
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    full_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
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

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', active={self.is_active})>"
