"""
Noteworthy Backend - Note Service Tests
=========================================

What:  NoteService lifecycle tests against SQLite, plus mock-session tests
       proving that anonymous calls never reach storage.

What we test:
    ✅ Create: synthesized vs explicit title, word count, pinning, folder checks
    ✅ Update: word count recomputed, title never re-synthesized
    ✅ Move, pin toggle, delete, ownership (foreign == missing)
    ✅ Atomic view counter under concurrency
    ✅ Search scoping and LIKE wildcard escaping
    ✅ Cursor pagination
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from noteworthy.database import unit_of_work
from noteworthy.exceptions import AuthenticationError, NotFoundError, ValidationError
from noteworthy.models import Note, User
from noteworthy.security.identity import ANONYMOUS, Authenticated
from noteworthy.services.folder_service import FolderService
from noteworthy.services.note_service import NoteService


@pytest.fixture
def folders():
    return FolderService()


@pytest.fixture
def service(folders):
    return NoteService(folders)


class TestCreateNote:

    @pytest.mark.asyncio
    async def test_title_synthesized_when_omitted(self, db_session, identity, service):
        note = await service.create_note(
            db_session, identity, "Buy milk. Then call the plumber about the sink"
        )

        assert note.title == "Buy milk."
        assert note.word_count == 9
        assert note.view_count == 0
        assert note.is_pinned is False
        assert note.pinned_at is None

    @pytest.mark.asyncio
    async def test_explicit_title_is_trimmed_and_kept(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "Body. More", title="  Mine  ")

        assert note.title == "Mine"

    @pytest.mark.asyncio
    async def test_content_is_trimmed(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "  \n hello world \n ")

        assert note.content == "hello world"
        assert note.word_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    async def test_blank_content_is_rejected(self, db_session, identity, service, content):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_note(db_session, identity, content)
        assert exc_info.value.field == "content"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["   ", "t" * 201])
    async def test_invalid_explicit_title_is_rejected(self, db_session, identity, service, title):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_note(db_session, identity, "content", title=title)
        assert exc_info.value.field == "title"

    @pytest.mark.asyncio
    async def test_pinned_on_create_sets_pinned_at(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "pin me", is_pinned=True)

        assert note.is_pinned is True
        assert note.pinned_at is not None

    @pytest.mark.asyncio
    async def test_into_own_folder(self, db_session, identity, service, folders):
        folder = await folders.create_folder(db_session, identity, "Work")

        note = await service.create_note(db_session, identity, "report", folder_id=folder.id)

        assert note.folder_id == folder.id

    @pytest.mark.asyncio
    async def test_into_foreign_folder_is_not_found(
        self, db_session, identity, other_identity, service, folders
    ):
        theirs = await folders.create_folder(db_session, other_identity, "Theirs")

        with pytest.raises(NotFoundError):
            await service.create_note(db_session, identity, "sneaky", folder_id=theirs.id)


class TestAnonymousCalls:
    """Anonymous callers fail before the first storage call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda s, db, nid: s.create_note(db, ANONYMOUS, "content"),
            lambda s, db, nid: s.get_note(db, ANONYMOUS, nid),
            lambda s, db, nid: s.view_note(db, ANONYMOUS, nid),
            lambda s, db, nid: s.update_note(db, ANONYMOUS, nid, content="x"),
            lambda s, db, nid: s.move_note(db, ANONYMOUS, nid, None),
            lambda s, db, nid: s.toggle_pin(db, ANONYMOUS, nid),
            lambda s, db, nid: s.delete_note(db, ANONYMOUS, nid),
            lambda s, db, nid: s.search_notes(db, ANONYMOUS, "query"),
            lambda s, db, nid: s.list_notes(db, ANONYMOUS),
        ],
    )
    async def test_no_storage_call(self, mock_db_session, service, call):
        with pytest.raises(AuthenticationError):
            await call(service, mock_db_session, uuid.uuid4())

        mock_db_session.execute.assert_not_called()
        mock_db_session.scalar.assert_not_called()
        mock_db_session.add.assert_not_called()
        mock_db_session.flush.assert_not_called()


class TestUpdateNote:

    @pytest.mark.asyncio
    async def test_content_change_recomputes_word_count_not_title(
        self, db_session, identity, service
    ):
        note = await service.create_note(db_session, identity, "First idea. Details follow")

        updated = await service.update_note(
            db_session, identity, note.id, content="Completely different words now. Yes"
        )

        assert updated.content == "Completely different words now. Yes"
        assert updated.word_count == 5
        assert updated.title == "First idea."

    @pytest.mark.asyncio
    async def test_updated_content_is_trimmed(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "Body")

        updated = await service.update_note(db_session, identity, note.id, content="  new body \n")

        assert updated.content == "new body"
        assert updated.word_count == 2

    @pytest.mark.asyncio
    async def test_explicit_title_is_applied(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "Body")

        updated = await service.update_note(db_session, identity, note.id, title="Renamed")

        assert updated.title == "Renamed"
        assert updated.content == "Body"

    @pytest.mark.asyncio
    async def test_blank_content_is_rejected(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "Body")

        with pytest.raises(ValidationError):
            await service.update_note(db_session, identity, note.id, content="   ")

    @pytest.mark.asyncio
    async def test_foreign_note_is_not_found(
        self, db_session, identity, other_identity, service
    ):
        theirs = await service.create_note(db_session, other_identity, "private")

        with pytest.raises(NotFoundError):
            await service.update_note(db_session, identity, theirs.id, content="mine now")

        assert (await service.get_note(db_session, other_identity, theirs.id)).content == "private"


class TestMovePinDelete:

    @pytest.mark.asyncio
    async def test_move_between_folders_and_out(self, db_session, identity, service, folders):
        a = await folders.create_folder(db_session, identity, "A")
        b = await folders.create_folder(db_session, identity, "B")
        note = await service.create_note(db_session, identity, "moving", folder_id=a.id)

        moved = await service.move_note(db_session, identity, note.id, b.id)
        assert moved.folder_id == b.id

        detached = await service.move_note(db_session, identity, note.id, None)
        assert detached.folder_id is None

    @pytest.mark.asyncio
    async def test_move_into_foreign_folder_is_not_found(
        self, db_session, identity, other_identity, service, folders
    ):
        theirs = await folders.create_folder(db_session, other_identity, "Theirs")
        note = await service.create_note(db_session, identity, "mine")

        with pytest.raises(NotFoundError):
            await service.move_note(db_session, identity, note.id, theirs.id)

    @pytest.mark.asyncio
    async def test_toggle_pin_sets_and_clears_timestamp(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "pin")

        pinned = await service.toggle_pin(db_session, identity, note.id)
        assert pinned.is_pinned is True
        assert pinned.pinned_at is not None

        unpinned = await service.toggle_pin(db_session, identity, note.id)
        assert unpinned.is_pinned is False
        assert unpinned.pinned_at is None

    @pytest.mark.asyncio
    async def test_toggle_pin_of_foreign_note_is_not_found(
        self, db_session, identity, other_identity, service
    ):
        theirs = await service.create_note(db_session, other_identity, "theirs")

        with pytest.raises(NotFoundError):
            await service.toggle_pin(db_session, identity, theirs.id)

    @pytest.mark.asyncio
    async def test_delete(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "bye")

        await service.delete_note(db_session, identity, note.id)

        with pytest.raises(NotFoundError):
            await service.get_note(db_session, identity, note.id)

    @pytest.mark.asyncio
    async def test_delete_foreign_note_is_not_found(
        self, db_session, identity, other_identity, service
    ):
        theirs = await service.create_note(db_session, other_identity, "theirs")

        with pytest.raises(NotFoundError):
            await service.delete_note(db_session, identity, theirs.id)


class TestViewNote:

    @pytest.mark.asyncio
    async def test_view_increments_and_get_does_not(self, db_session, identity, service):
        note = await service.create_note(db_session, identity, "read me")

        first = await service.view_note(db_session, identity, note.id)
        second = await service.view_note(db_session, identity, note.id)
        plain = await service.get_note(db_session, identity, note.id)

        assert (first.view_count, second.view_count, plain.view_count) == (1, 2, 2)

    @pytest.mark.asyncio
    async def test_view_of_foreign_note_is_not_found(
        self, db_session, identity, other_identity, service
    ):
        theirs = await service.create_note(db_session, other_identity, "theirs")

        with pytest.raises(NotFoundError):
            await service.view_note(db_session, identity, theirs.id)

        assert (await service.get_note(db_session, other_identity, theirs.id)).view_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_views_are_all_counted(self, db_engine, service, hashed_password):
        async with unit_of_work() as session:
            owner = User(email="viewer@example.com", password_hash=hashed_password)
            session.add(owner)
            await session.flush()
            reader = Authenticated(user_id=owner.id)
            note = await service.create_note(session, reader, "popular")

        views = 10

        async def view_once():
            async with unit_of_work() as session:
                await service.view_note(session, reader, note.id)

        await asyncio.gather(*(view_once() for _ in range(views)))

        async with unit_of_work() as session:
            final = await service.get_note(session, reader, note.id)
        assert final.view_count == views


class TestSearchNotes:

    @pytest.mark.asyncio
    async def test_matches_title_and_content(self, db_session, identity, service):
        await service.create_note(db_session, identity, "Quarterly budget review", title="Finance")
        await service.create_note(db_session, identity, "Holiday plans", title="Budget trip")
        await service.create_note(db_session, identity, "Unrelated")

        result = await service.search_notes(db_session, identity, "  budget ")

        assert result.query == "budget"
        assert result.count == 2
        assert {n.title for n in result.notes} == {"Finance", "Budget trip"}

    @pytest.mark.asyncio
    async def test_never_returns_other_users_notes(
        self, db_session, identity, other_identity, service
    ):
        await service.create_note(db_session, other_identity, "secret plans for everyone")
        mine = await service.create_note(db_session, identity, "my plans")

        for query in ["plans", "%", "_", "' OR 1=1 --", "secret"]:
            result = await service.search_notes(db_session, identity, query)
            assert all(n.id == mine.id for n in result.notes)

    @pytest.mark.asyncio
    async def test_wildcards_match_literally(self, db_session, identity, service):
        await service.create_note(db_session, identity, "100% done")
        await service.create_note(db_session, identity, "100 percent done")

        result = await service.search_notes(db_session, identity, "100%")

        assert [n.text_preview for n in result.notes] == ["100% done"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "q" * 201])
    async def test_invalid_query_is_rejected(self, db_session, identity, service, query):
        with pytest.raises(ValidationError):
            await service.search_notes(db_session, identity, query)

    @pytest.mark.asyncio
    async def test_limit_is_applied(self, db_session, identity, service):
        for i in range(5):
            await service.create_note(db_session, identity, f"match number {i}")

        result = await service.search_notes(db_session, identity, "match", limit=3)

        assert result.count == 3


class TestListNotes:

    async def _create_aged(self, db_session, identity, service, count, folder_id=None):
        """Create notes with strictly decreasing updated_at (newest first)."""
        base = datetime.now(timezone.utc)
        created = []
        for i in range(count):
            note = await service.create_note(
                db_session, identity, f"note {i}", folder_id=folder_id
            )
            await db_session.execute(
                update(Note)
                .where(Note.id == note.id)
                .values(updated_at=base - timedelta(minutes=i))
                .execution_options(synchronize_session=False)
            )
            created.append(note.id)
        db_session.expire_all()
        return created

    @pytest.mark.asyncio
    async def test_cursor_pagination_walks_all_notes(self, db_session, identity, service):
        created = await self._create_aged(db_session, identity, service, 5)

        page1 = await service.list_notes(db_session, identity, limit=2)
        page2 = await service.list_notes(db_session, identity, limit=2, cursor=page1.next_cursor)
        page3 = await service.list_notes(db_session, identity, limit=2, cursor=page2.next_cursor)

        assert page1.total_count == 5
        assert page1.has_more and page2.has_more and not page3.has_more
        assert page3.next_cursor is None
        walked = [n.id for page in (page1, page2, page3) for n in page.notes]
        assert walked == created

    @pytest.mark.asyncio
    async def test_cursor_pagination_with_equal_timestamps(self, db_session, identity, service):
        created = [
            (await service.create_note(db_session, identity, f"same time {i}")).id
            for i in range(4)
        ]
        await db_session.execute(
            update(Note)
            .where(Note.id.in_(created))
            .values(updated_at=datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
            .execution_options(synchronize_session=False)
        )
        db_session.expire_all()

        walked, cursor = [], None
        for _ in range(4):
            page = await service.list_notes(db_session, identity, limit=2, cursor=cursor)
            walked.extend(n.id for n in page.notes)
            cursor = page.next_cursor
            if cursor is None:
                break

        assert len(walked) == 4
        assert set(walked) == set(created)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("cursor", ["garbage", "2026-01-01T00:00:00", "|not-a-uuid"])
    async def test_malformed_cursor_returns_first_page(
        self, db_session, identity, service, cursor
    ):
        await self._create_aged(db_session, identity, service, 3)

        page = await service.list_notes(db_session, identity, limit=2, cursor=cursor)

        assert len(page.notes) == 2
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_filters(self, db_session, identity, other_identity, service, folders):
        folder = await folders.create_folder(db_session, identity, "Work")
        in_folder = await service.create_note(db_session, identity, "filed", folder_id=folder.id)
        loose = await service.create_note(db_session, identity, "loose", is_pinned=True)
        await service.create_note(db_session, other_identity, "not mine")

        everything = await service.list_notes(db_session, identity)
        filed = await service.list_notes(db_session, identity, folder_id=folder.id)
        unfiled = await service.list_notes(db_session, identity, folder_id=None)
        pinned = await service.list_notes(db_session, identity, pinned_only=True)

        assert everything.total_count == 2
        assert [n.id for n in filed.notes] == [in_folder.id]
        assert [n.id for n in unfiled.notes] == [loose.id]
        assert [n.id for n in pinned.notes] == [loose.id]

    @pytest.mark.asyncio
    async def test_foreign_folder_filter_is_not_found(
        self, db_session, identity, other_identity, service, folders
    ):
        theirs = await folders.create_folder(db_session, other_identity, "Theirs")

        with pytest.raises(NotFoundError):
            await service.list_notes(db_session, identity, folder_id=theirs.id)
