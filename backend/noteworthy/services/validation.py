"""
Noteworthy Backend - Input Validation Rules
=============================================

What:  Business-rule validation shared by the services.
How:   Each helper returns the normalized value or raises ValidationError
       naming the offending field. Nothing here touches storage, so every
       check runs before a service issues its first write.

Rules:
    Note content   non-empty after trim, no upper bound
    Note title     1-200 characters after trim
    Folder name    1-100 characters after trim
    Email          simple local@domain.tld shape, stored lower-cased
    Password       at least `settings.password_min_length` characters,
                   at most 72 bytes (bcrypt limit)
    Full name      2-100 characters after trim (optional)
    Search query   non-empty after trim, at most 200 characters
"""

import re
from typing import Optional

from noteworthy.config import settings
from noteworthy.exceptions import ValidationError
from noteworthy.models.folder import FOLDER_NAME_MAX_LENGTH
from noteworthy.models.note import NOTE_TITLE_MAX_LENGTH
from noteworthy.security.passwords import BCRYPT_MAX_BYTES

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SEARCH_QUERY_MAX_LENGTH = 200
FULL_NAME_MIN_LENGTH = 2
FULL_NAME_MAX_LENGTH = 100


def validate_note_content(content: Optional[str]) -> str:
    """Returns the content with surrounding whitespace removed."""
    if content is None or not content.strip():
        raise ValidationError(
            message="Content cannot be empty or contain only whitespace",
            field="content",
        )
    return content.strip()


def validate_note_title(title: str) -> str:
    trimmed = (title or "").strip()
    if not trimmed:
        raise ValidationError(
            message="Title cannot be empty or contain only whitespace",
            field="title",
        )
    if len(trimmed) > NOTE_TITLE_MAX_LENGTH:
        raise ValidationError(
            message=f"Title must be at most {NOTE_TITLE_MAX_LENGTH} characters, got {len(trimmed)}",
            field="title",
        )
    return trimmed


def validate_folder_name(name: Optional[str]) -> str:
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError(message="Folder name cannot be empty", field="name")
    if len(trimmed) > FOLDER_NAME_MAX_LENGTH:
        raise ValidationError(
            message=f"Folder name must be at most {FOLDER_NAME_MAX_LENGTH} characters, got {len(trimmed)}",
            field="name",
        )
    return trimmed


def validate_position(position: Optional[int]) -> Optional[int]:
    if position is not None and position < 0:
        raise ValidationError(message="Position cannot be negative", field="position")
    return position


def normalize_email(email: Optional[str]) -> str:
    normalized = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(normalized) or len(normalized) > 255:
        raise ValidationError(message="Invalid email format", field="email")
    return normalized


def validate_password(password: Optional[str]) -> str:
    password = password or ""
    if len(password) < settings.password_min_length:
        raise ValidationError(
            message=f"Password must be at least {settings.password_min_length} characters long",
            field="password",
        )
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValidationError(
            message=f"Password must be at most {BCRYPT_MAX_BYTES} bytes long",
            field="password",
        )
    return password


def validate_full_name(full_name: Optional[str]) -> Optional[str]:
    if full_name is None:
        return None
    trimmed = full_name.strip()
    if not FULL_NAME_MIN_LENGTH <= len(trimmed) <= FULL_NAME_MAX_LENGTH:
        raise ValidationError(
            message=(
                f"Full name must be between {FULL_NAME_MIN_LENGTH} and "
                f"{FULL_NAME_MAX_LENGTH} characters"
            ),
            field="full_name",
        )
    return trimmed


def normalize_search_query(query: Optional[str]) -> str:
    trimmed = (query or "").strip()
    if not trimmed:
        raise ValidationError(message="Search query cannot be empty", field="query")
    if len(trimmed) > SEARCH_QUERY_MAX_LENGTH:
        raise ValidationError(
            message=f"Search query must be at most {SEARCH_QUERY_MAX_LENGTH} characters",
            field="query",
        )
    return trimmed
