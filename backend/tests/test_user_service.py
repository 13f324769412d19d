"""
Noteworthy Backend - User Service Tests
=========================================

What:  Registration, login, profile and deactivation against SQLite.
"""

import pytest

from noteworthy.exceptions import AuthenticationError, ConflictError, ValidationError
from noteworthy.security.identity import ANONYMOUS, Authenticated
from noteworthy.services.folder_service import DEFAULT_FOLDER_NAME, folder_service
from noteworthy.services.note_service import note_service
from noteworthy.services.user_service import UserService

PASSWORD = "s3cure-enough"


@pytest.fixture
def users(token_service):
    return UserService(token_service)


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_returns_token_and_default_folder(
        self, db_session, users, token_service
    ):
        result = await users.register(db_session, "  Carol@Example.COM ", PASSWORD, "Carol")

        assert result.user.email == "carol@example.com"
        assert result.token_type == "bearer"
        assert result.expires_in == 24 * 3600
        assert token_service.verify(result.access_token) == result.user.id

        listing = await folder_service.list_folders(
            db_session, Authenticated(user_id=result.user.id)
        )
        assert [(f.name, f.is_default) for f in listing.folders] == [(DEFAULT_FOLDER_NAME, True)]

    @pytest.mark.asyncio
    async def test_duplicate_email_is_a_conflict(self, db_session, users):
        await users.register(db_session, "dave@example.com", PASSWORD)

        with pytest.raises(ConflictError):
            await users.register(db_session, "DAVE@example.com", PASSWORD)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email, password, full_name, field",
        [
            ("not-an-email", PASSWORD, None, "email"),
            ("erin@example.com", "short", None, "password"),
            ("erin@example.com", "x" * 73, None, "password"),
            ("erin@example.com", PASSWORD, "E", "full_name"),
        ],
    )
    async def test_invalid_input_is_rejected(
        self, db_session, users, email, password, full_name, field
    ):
        with pytest.raises(ValidationError) as exc_info:
            await users.register(db_session, email, password, full_name)
        assert exc_info.value.field == field


class TestLogin:

    @pytest.mark.asyncio
    async def test_login_with_correct_password(self, db_session, users, token_service):
        registered = await users.register(db_session, "frank@example.com", PASSWORD)

        result = await users.login(db_session, "Frank@Example.com", PASSWORD)

        assert result.user.id == registered.user.id
        assert token_service.verify(result.access_token) == registered.user.id

    @pytest.mark.asyncio
    async def test_failures_are_indistinguishable(self, db_session, users):
        registered = await users.register(db_session, "gina@example.com", PASSWORD)
        await users.deactivate(db_session, Authenticated(user_id=registered.user.id))
        await users.register(db_session, "hank@example.com", PASSWORD)

        attempts = [
            ("nobody@example.com", PASSWORD),
            ("hank@example.com", "wrong-password"),
            ("gina@example.com", PASSWORD),
            ("garbage", PASSWORD),
        ]
        messages = set()
        for email, password in attempts:
            with pytest.raises(AuthenticationError) as exc_info:
                await users.login(db_session, email, password)
            messages.add(exc_info.value.message)

        assert messages == {AuthenticationError.DEFAULT_MESSAGE}


class TestProfile:

    @pytest.mark.asyncio
    async def test_me(self, db_session, users, identity, user):
        profile = await users.me(db_session, identity)

        assert profile.id == user.id
        assert profile.email == user.email
        assert "password_hash" not in profile.model_dump()

    @pytest.mark.asyncio
    async def test_me_requires_authentication(self, mock_db_session, users):
        with pytest.raises(AuthenticationError):
            await users.me(mock_db_session, ANONYMOUS)

        mock_db_session.scalar.assert_not_called()

    @pytest.mark.asyncio
    async def test_deactivation_locks_out_existing_identity(self, db_session, users, identity):
        result = await users.deactivate(db_session, identity)
        assert result.is_active is False

        with pytest.raises(AuthenticationError):
            await users.me(db_session, identity)
        with pytest.raises(AuthenticationError):
            await note_service.create_note(db_session, identity, "still here?")
