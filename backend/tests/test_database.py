"""
Noteworthy Backend - Storage Guard and Unit of Work Tests
===========================================================

What:  How storage failures are classified, and that a failed unit of work
       leaves nothing behind.
"""

import asyncio
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from noteworthy.database import storage_guard, unit_of_work
from noteworthy.exceptions import NotFoundError, UnavailableError
from noteworthy.models import Folder, User


class TestStorageGuard:

    @pytest.mark.asyncio
    async def test_timeout_becomes_unavailable_and_rolls_back(self, mock_db_session):
        with pytest.raises(UnavailableError) as exc_info:
            async with storage_guard(mock_db_session, "test.sleep", timeout=0.01):
                await asyncio.sleep(1)

        assert exc_info.value.retry_after == 1
        assert exc_info.value.context["operation"] == "test.sleep"
        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_operational_error_becomes_unavailable(self, mock_db_session):
        with pytest.raises(UnavailableError):
            async with storage_guard(mock_db_session, "test.locked"):
                raise OperationalError("UPDATE notes", {}, Exception("database is locked"))

        mock_db_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_integrity_error_passes_through(self, mock_db_session):
        with pytest.raises(IntegrityError):
            async with storage_guard(mock_db_session, "test.unique"):
                raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        mock_db_session.rollback.assert_not_called()

    @pytest.mark.asyncio
    async def test_application_errors_pass_through(self, mock_db_session):
        with pytest.raises(NotFoundError):
            async with storage_guard(mock_db_session, "test.app"):
                raise NotFoundError(resource="note")

        mock_db_session.rollback.assert_not_called()


class TestUnitOfWork:

    @pytest.mark.asyncio
    async def test_commits_on_success(self, db_engine, hashed_password):
        async with unit_of_work() as session:
            session.add(User(email="kept@example.com", password_hash=hashed_password))

        async with unit_of_work() as session:
            count = await session.scalar(select(func.count(User.id)))
        assert count == 1

    @pytest.mark.asyncio
    async def test_rolls_back_everything_on_error(self, db_engine, hashed_password):
        with pytest.raises(RuntimeError):
            async with unit_of_work() as session:
                user = User(email="gone@example.com", password_hash=hashed_password)
                session.add(user)
                await session.flush()
                session.add(Folder(name="Half done", user_id=user.id))
                await session.flush()
                raise RuntimeError("boom")

        async with unit_of_work() as session:
            assert await session.scalar(select(func.count(User.id))) == 0
            assert await session.scalar(select(func.count(Folder.id))) == 0

    @pytest.mark.asyncio
    async def test_session_is_closed(self):
        session = MagicMock()
        closed = []

        async def close():
            closed.append(True)

        async def noop():
            return None

        session.commit = noop
        session.rollback = noop
        session.close = close

        class _Factory:
            def __call__(self):
                return self

            async def __aenter__(self):
                return session

            async def __aexit__(self, *exc):
                return False

        async with unit_of_work(_Factory()):
            pass

        assert closed == [True]
