"""
Noteworthy Backend - Note Request/Response Schemas
====================================================

What:  Pydantic models defining the note API contract.
How:   FastAPI validates request bodies against the *Request models; services
       return the *Response models built from ORM rows (`from_attributes`).

Schemas are separate from SQLAlchemy models so that internal columns
(user_id) are never serialized and derived fields (text_preview) can be added.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

PREVIEW_LENGTH = 200


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreateRequest(BaseModel):
    """
    Body of POST /api/notes.

    `title` is optional: when omitted, a title is synthesized from content.
    Business rules (non-blank content, title length) are enforced by
    NoteService so that non-HTTP callers get the same checks.
    """
    content: str = Field(description="Note body (must contain non-whitespace text)")
    title: Optional[str] = Field(default=None, description="Explicit title (1-200 chars)")
    folder_id: Optional[uuid.UUID] = Field(default=None, description="Target folder")
    is_pinned: bool = Field(default=False, description="Create the note pinned")


class NoteUpdateRequest(BaseModel):
    """Body of PATCH /api/notes/{id}. Omitted fields stay unchanged."""
    content: Optional[str] = Field(default=None)
    title: Optional[str] = Field(default=None)


class NoteMoveRequest(BaseModel):
    """Body of POST /api/notes/{id}/move; `folder_id: null` detaches the note."""
    folder_id: Optional[uuid.UUID] = Field(default=None)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """Full representation of a note."""
    id: uuid.UUID
    title: str
    content: str
    folder_id: Optional[uuid.UUID] = None
    is_pinned: bool
    pinned_at: Optional[datetime] = None
    view_count: int
    word_count: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteListItem(BaseModel):
    """
    Compact note representation for list and search views.

    Carries the first 200 characters of content instead of the full body.
    """
    id: uuid.UUID
    title: str
    text_preview: str
    folder_id: Optional[uuid.UUID] = None
    is_pinned: bool
    word_count: int
    updated_at: datetime

    @classmethod
    def from_note(cls, note) -> "NoteListItem":
        return cls(
            id=note.id,
            title=note.title,
            text_preview=note.content[:PREVIEW_LENGTH],
            folder_id=note.folder_id,
            is_pinned=note.is_pinned,
            word_count=note.word_count,
            updated_at=note.updated_at,
        )


class NoteListResponse(BaseModel):
    """
    Paginated response wrapper for the notes list endpoint.

    next_cursor is `<updated_at>|<id>` of the last item; the client sends it
    back to fetch the following page, which resumes strictly after that
    (updated_at, id) pair.
    """
    notes: List[NoteListItem]
    total_count: int
    next_cursor: Optional[str] = None
    has_more: bool


class NoteSearchResponse(BaseModel):
    """Ranked search results; only ever contains the caller's own notes."""
    query: str
    notes: List[NoteListItem]
    count: int
