"""
Noteworthy Backend - Notes Route Handlers
===========================================

What:  CRUD, move, pin, view and search endpoints under /api/notes.
How:   Extracts query parameters and bodies, delegates to NoteService, returns JSON.

Caching Strategy:
    Notes are mutable and private: responses carry `Cache-Control: private,
    no-cache` so shared caches never store them and browsers revalidate.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from noteworthy.database import get_db_session
from noteworthy.dependencies import get_identity
from noteworthy.schemas.common import ErrorResponse
from noteworthy.schemas.note import (
    NoteCreateRequest,
    NoteListResponse,
    NoteMoveRequest,
    NoteResponse,
    NoteSearchResponse,
    NoteUpdateRequest,
)
from noteworthy.security.identity import Identity
from noteworthy.services.common import UNSET
from noteworthy.services.note_service import note_service

logger = logging.getLogger(__name__)

# ── Router Configuration ──────────────────────────────────────────────────
router = APIRouter(prefix="/api/notes", tags=["Notes"])

_NO_STORE = "private, no-cache"

_COMMON_ERRORS = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    404: {"description": "Note or folder not found", "model": ErrorResponse},
    503: {"description": "Storage temporarily unavailable", "model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=NoteResponse,
    responses={
        **_COMMON_ERRORS,
        400: {"description": "Empty content or invalid title", "model": ErrorResponse},
    },
    summary="Create a note",
    description="When no title is given one is generated from the first sentence of the content.",
)
async def create_note(
    body: NoteCreateRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.create_note(
        db,
        identity,
        content=body.content,
        title=body.title,
        folder_id=body.folder_id,
        is_pinned=body.is_pinned,
    )


@router.get(
    "",
    response_model=NoteListResponse,
    responses=_COMMON_ERRORS,
    summary="List notes with pagination",
)
async def list_notes(
    response: Response,
    folder_id: Optional[UUID] = Query(default=None, description="Only notes in this folder"),
    unfiled: bool = Query(default=False, description="Only notes that are in no folder"),
    pinned: bool = Query(default=False, description="Only pinned notes"),
    limit: int = Query(default=20, ge=1, le=100, description="Items per page (max 100)"),
    cursor: Optional[str] = Query(
        default=None,
        description="`next_cursor` from the previous page; omit for the first page",
    ),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    """
    Example client usage (infinite scroll):
        Page 1: GET /api/notes?limit=20
        Page 2: GET /api/notes?limit=20&cursor=<next_cursor of page 1>
    """
    scope = folder_id if folder_id is not None else (None if unfiled else UNSET)
    result = await note_service.list_notes(
        db,
        identity,
        folder_id=scope,
        pinned_only=pinned,
        limit=limit,
        cursor=cursor,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    response.headers["Cache-Control"] = _NO_STORE
    return result


@router.get(
    "/search",
    response_model=NoteSearchResponse,
    responses={
        **_COMMON_ERRORS,
        400: {"description": "Empty query", "model": ErrorResponse},
    },
    summary="Full-text search over your notes",
)
async def search_notes(
    q: str = Query(description="Search text"),
    limit: int = Query(default=20, ge=1, le=100),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteSearchResponse:
    return await note_service.search_notes(db, identity, query=q, limit=limit)


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses=_COMMON_ERRORS,
    summary="Get a note (does not count as a view)",
)
async def get_note(
    note_id: UUID,
    response: Response,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    result = await note_service.get_note(db, identity, note_id)
    response.headers["Cache-Control"] = _NO_STORE
    return result


@router.post(
    "/{note_id}/view",
    response_model=NoteResponse,
    responses=_COMMON_ERRORS,
    summary="Open a note and increment its view count",
)
async def view_note(
    note_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.view_note(db, identity, note_id)


@router.patch(
    "/{note_id}",
    response_model=NoteResponse,
    responses={
        **_COMMON_ERRORS,
        400: {"description": "Empty content or invalid title", "model": ErrorResponse},
    },
    summary="Edit a note",
)
async def update_note(
    note_id: UUID,
    body: NoteUpdateRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.update_note(
        db, identity, note_id, content=body.content, title=body.title
    )


@router.post(
    "/{note_id}/move",
    response_model=NoteResponse,
    responses=_COMMON_ERRORS,
    summary="Move a note into a folder (or out of all folders)",
)
async def move_note(
    note_id: UUID,
    body: NoteMoveRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.move_note(db, identity, note_id, folder_id=body.folder_id)


@router.post(
    "/{note_id}/pin",
    response_model=NoteResponse,
    responses=_COMMON_ERRORS,
    summary="Toggle the pinned flag",
)
async def toggle_pin(
    note_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.toggle_pin(db, identity, note_id)


@router.delete(
    "/{note_id}",
    status_code=204,
    responses=_COMMON_ERRORS,
    summary="Delete a note",
)
async def delete_note(
    note_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await note_service.delete_note(db, identity, note_id)
    return Response(status_code=204)
