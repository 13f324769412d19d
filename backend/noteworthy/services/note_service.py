"""
Noteworthy Backend - Note Service (Lifecycle Manager)
=======================================================

What:  Creation, editing, moving, pinning, viewing, searching and deleting
       notes, plus the derived fields (title at creation, word count).
Who:   Called by the note routes with the caller's identity.

Lifecycle rules:
    - create: blank content is rejected; a missing title is synthesized from
      content (services/title.py); word_count is computed from the content.
    - update: ownership checked; a content change recomputes word_count in the
      same UPDATE. The title is only changed when the caller sends one; it is
      never re-synthesized on edit.
    - toggle_pin: one UPDATE flips is_pinned and sets/clears pinned_at.
    - view: one UPDATE ... SET view_count = view_count + 1 ... RETURNING, so
      concurrent views are never lost or double-counted.
    - delete: hard delete; notes have no dependents.

Search:
    The query is trimmed and must be non-empty. Every search is filtered by
    the caller's user id before any matching happens. On PostgreSQL ranking
    is delegated to `ts_rank` over `to_tsvector(title || ' ' || content)`
    matched with `plainto_tsquery`; other dialects fall back to a
    case-insensitive LIKE with escaped wildcards. The query string is always a
    bound parameter.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import (
    and_,
    case,
    desc,
    func,
    literal,
    literal_column,
    not_,
    null,
    or_,
    select,
    update,
)
from sqlalchemy.ext.asyncio import AsyncSession

from noteworthy.database import storage_guard
from noteworthy.exceptions import NotFoundError
from noteworthy.models.note import Note
from noteworthy.schemas.note import (
    NoteListItem,
    NoteListResponse,
    NoteResponse,
    NoteSearchResponse,
)
from noteworthy.security.identity import Identity, require_user
from noteworthy.services.common import UNSET, ensure_active_user, escape_like
from noteworthy.services.folder_service import FolderService, folder_service
from noteworthy.services.title import count_words, synthesize_title
from noteworthy.services.validation import (
    normalize_search_query,
    validate_note_content,
    validate_note_title,
)

logger = logging.getLogger(__name__)

# Inlined rather than bound so the expression matches the GIN index in migration 001
SEARCH_LANGUAGE = literal_column("'english'")
_SEPARATOR = literal_column("' '")
_CURSOR_SEPARATOR = "|"


def _encode_cursor(note: Note) -> str:
    return f"{note.updated_at.isoformat()}{_CURSOR_SEPARATOR}{note.id}"


def _decode_cursor(cursor: str) -> Optional[Tuple[datetime, uuid.UUID]]:
    """Split a list cursor into (updated_at, id); None when it is malformed."""
    timestamp, _, note_id = cursor.partition(_CURSOR_SEPARATOR)
    try:
        return datetime.fromisoformat(timestamp), uuid.UUID(note_id)
    except ValueError:
        return None


class NoteService:
    """
    Business logic layer for note operations.

    Stateless apart from the FolderService used for target-folder ownership
    checks; every method receives the session and the caller's identity.
    """

    def __init__(self, folders: Optional[FolderService] = None):
        self._folders = folders or folder_service

    # ══════════════════════════════════════════════════════════════════════
    # Create
    # ══════════════════════════════════════════════════════════════════════

    async def create_note(
        self,
        db: AsyncSession,
        identity: Identity,
        content: str,
        title: Optional[str] = None,
        folder_id: Optional[uuid.UUID] = None,
        is_pinned: bool = False,
    ) -> NoteResponse:
        """
        Create a note.

        Raises:
            AuthenticationError: anonymous or deactivated caller
            ValidationError: blank content, blank or over-long explicit title
            NotFoundError: folder does not exist or belongs to someone else
        """
        user_id = require_user(identity)
        content = validate_note_content(content)
        final_title = validate_note_title(title) if title is not None else synthesize_title(content)

        async with storage_guard(db, "note.create"):
            await ensure_active_user(db, user_id)
            if folder_id is not None:
                await self._folders.get_owned_folder(db, user_id, folder_id)

            note = Note(
                title=final_title,
                content=content,
                user_id=user_id,
                folder_id=folder_id,
                is_pinned=is_pinned,
                pinned_at=datetime.now(timezone.utc) if is_pinned else None,
                view_count=0,
                word_count=count_words(content),
            )
            db.add(note)
            await db.flush()

        logger.info(
            "Note %s created for user %s (%d words, auto_title=%s)",
            note.id, user_id, note.word_count, title is None,
        )
        return NoteResponse.model_validate(note)

    # ══════════════════════════════════════════════════════════════════════
    # Read
    # ══════════════════════════════════════════════════════════════════════

    async def get_note(
        self, db: AsyncSession, identity: Identity, note_id: uuid.UUID
    ) -> NoteResponse:
        """Read a note without touching its view counter."""
        user_id = require_user(identity)
        async with storage_guard(db, "note.get"):
            await ensure_active_user(db, user_id)
            note = await self._get_owned(db, user_id, note_id)
        return NoteResponse.model_validate(note)

    async def view_note(
        self, db: AsyncSession, identity: Identity, note_id: uuid.UUID
    ) -> NoteResponse:
        """
        Read a note and count the view.

        The increment is a single SQL statement evaluated by the database, so
        N concurrent views of one note add exactly N. updated_at is kept as is.
        """
        user_id = require_user(identity)
        async with storage_guard(db, "note.view"):
            await ensure_active_user(db, user_id)
            result = await db.execute(
                update(Note)
                .where(Note.id == note_id, Note.user_id == user_id)
                .values(view_count=Note.view_count + 1, updated_at=Note.updated_at)
                .returning(Note)
                .execution_options(populate_existing=True, synchronize_session=False)
            )
            note = result.scalar_one_or_none()
            if note is None:
                raise NotFoundError(resource="note", resource_id=str(note_id))
        return NoteResponse.model_validate(note)

    async def list_notes(
        self,
        db: AsyncSession,
        identity: Identity,
        folder_id=UNSET,
        pinned_only: bool = False,
        limit: int = 20,
        cursor: Optional[str] = None,
    ) -> NoteListResponse:
        """
        List the caller's notes, most recently updated first.

        folder_id omitted → all notes; None → notes in no folder; an id →
        notes in that folder (NotFoundError if it is not the caller's).
        Pagination is cursor based: `cursor` is `<ISO updated_at>|<id>` of the
        last item of the previous page, so notes sharing a timestamp are split
        by id. An unparsable cursor is ignored.
        """
        user_id = require_user(identity)
        limit = max(1, min(limit, 100))

        async with storage_guard(db, "note.list"):
            await ensure_active_user(db, user_id)

            filters = [Note.user_id == user_id]
            if folder_id is not UNSET:
                if folder_id is None:
                    filters.append(Note.folder_id.is_(None))
                else:
                    await self._folders.get_owned_folder(db, user_id, folder_id)
                    filters.append(Note.folder_id == folder_id)
            if pinned_only:
                filters.append(Note.is_pinned.is_(True))

            query = select(Note).where(*filters)
            position = _decode_cursor(cursor) if cursor else None
            if position is not None:
                cursor_ts, cursor_id = position
                query = query.where(
                    or_(
                        Note.updated_at < cursor_ts,
                        and_(Note.updated_at == cursor_ts, Note.id < cursor_id),
                    )
                )

            # Fetch one extra row to learn whether another page exists
            query = query.order_by(desc(Note.updated_at), desc(Note.id)).limit(limit + 1)
            notes = list((await db.execute(query)).scalars().all())

            total_count = await db.scalar(select(func.count(Note.id)).where(*filters)) or 0

        has_more = len(notes) > limit
        if has_more:
            notes = notes[:limit]
        next_cursor = _encode_cursor(notes[-1]) if has_more and notes else None

        return NoteListResponse(
            notes=[NoteListItem.from_note(note) for note in notes],
            total_count=total_count,
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def search_notes(
        self,
        db: AsyncSession,
        identity: Identity,
        query: str,
        limit: int = 20,
    ) -> NoteSearchResponse:
        """
        Full-text search over the caller's own notes.

        Raises:
            ValidationError: blank or over-long query
        """
        user_id = require_user(identity)
        normalized = normalize_search_query(query)
        limit = max(1, min(limit, 100))

        async with storage_guard(db, "note.search"):
            await ensure_active_user(db, user_id)
            dialect = db.get_bind().dialect.name
            if dialect == "postgresql":
                stmt = self._fulltext_query(user_id, normalized)
            else:
                stmt = self._substring_query(user_id, normalized)
            notes = list((await db.execute(stmt.limit(limit))).scalars().all())

        logger.debug("Search by user %s returned %d note(s)", user_id, len(notes))
        return NoteSearchResponse(
            query=normalized,
            notes=[NoteListItem.from_note(note) for note in notes],
            count=len(notes),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Update
    # ══════════════════════════════════════════════════════════════════════

    async def update_note(
        self,
        db: AsyncSession,
        identity: Identity,
        note_id: uuid.UUID,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> NoteResponse:
        """
        Edit content and/or title.

        The row is locked for the read-modify-write, and content, word_count
        and updated_at are written by one UPDATE.
        """
        user_id = require_user(identity)
        new_content = validate_note_content(content) if content is not None else None
        new_title = validate_note_title(title) if title is not None else None

        async with storage_guard(db, "note.update"):
            await ensure_active_user(db, user_id)
            note = await self._get_owned(db, user_id, note_id, for_update=True)

            if new_content is not None and new_content != note.content:
                note.content = new_content
                note.word_count = count_words(new_content)
            if new_title is not None:
                note.title = new_title
            await db.flush()

        return NoteResponse.model_validate(note)

    async def move_note(
        self,
        db: AsyncSession,
        identity: Identity,
        note_id: uuid.UUID,
        folder_id: Optional[uuid.UUID],
    ) -> NoteResponse:
        """Put the note in `folder_id`, or in no folder when it is None."""
        user_id = require_user(identity)

        async with storage_guard(db, "note.move"):
            await ensure_active_user(db, user_id)
            note = await self._get_owned(db, user_id, note_id, for_update=True)
            if folder_id is not None:
                await self._folders.get_owned_folder(db, user_id, folder_id)
            note.folder_id = folder_id
            await db.flush()

        logger.info("Note %s moved to folder %s", note_id, folder_id)
        return NoteResponse.model_validate(note)

    async def toggle_pin(
        self, db: AsyncSession, identity: Identity, note_id: uuid.UUID
    ) -> NoteResponse:
        """Flip the pinned flag; pinned_at is set or cleared in the same statement."""
        user_id = require_user(identity)
        now = datetime.now(timezone.utc)

        async with storage_guard(db, "note.toggle_pin"):
            await ensure_active_user(db, user_id)
            result = await db.execute(
                update(Note)
                .where(Note.id == note_id, Note.user_id == user_id)
                .values(
                    is_pinned=not_(Note.is_pinned),
                    pinned_at=case(
                        (Note.is_pinned.is_(True), null()),
                        else_=literal(now, Note.pinned_at.type),
                    ),
                )
                .returning(Note)
                .execution_options(populate_existing=True, synchronize_session=False)
            )
            note = result.scalar_one_or_none()
            if note is None:
                raise NotFoundError(resource="note", resource_id=str(note_id))

        logger.info("Note %s pinned=%s", note_id, note.is_pinned)
        return NoteResponse.model_validate(note)

    # ══════════════════════════════════════════════════════════════════════
    # Delete
    # ══════════════════════════════════════════════════════════════════════

    async def delete_note(
        self, db: AsyncSession, identity: Identity, note_id: uuid.UUID
    ) -> None:
        user_id = require_user(identity)
        async with storage_guard(db, "note.delete"):
            await ensure_active_user(db, user_id)
            note = await self._get_owned(db, user_id, note_id, for_update=True)
            await db.delete(note)
            await db.flush()
        logger.info("Note %s deleted by user %s", note_id, user_id)

    # ══════════════════════════════════════════════════════════════════════
    # Internal helpers
    # ══════════════════════════════════════════════════════════════════════

    async def _get_owned(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        note_id: uuid.UUID,
        for_update: bool = False,
    ) -> Note:
        query = select(Note).where(Note.id == note_id, Note.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        note = await db.scalar(query)
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    @staticmethod
    def _fulltext_query(user_id: uuid.UUID, text_query: str):
        document = func.to_tsvector(
            SEARCH_LANGUAGE, Note.title.op("||")(_SEPARATOR).op("||")(Note.content)
        )
        ts_query = func.plainto_tsquery(SEARCH_LANGUAGE, text_query)
        rank = func.ts_rank(document, ts_query)
        return (
            select(Note)
            .where(Note.user_id == user_id, document.op("@@")(ts_query))
            .order_by(rank.desc(), desc(Note.updated_at))
        )

    @staticmethod
    def _substring_query(user_id: uuid.UUID, text_query: str):
        pattern = f"%{escape_like(text_query)}%"
        return (
            select(Note)
            .where(
                Note.user_id == user_id,
                or_(
                    Note.title.ilike(pattern, escape="\\"),
                    Note.content.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(desc(Note.is_pinned), desc(Note.updated_at))
        )


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
