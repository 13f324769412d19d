"""
Noteworthy Backend - User Service (Accounts)
==============================================

What:  Registration, login, profile lookup and deactivation.
How:   Passwords are hashed with bcrypt (security/passwords.py); successful
       register/login returns a bearer token issued by the injected TokenService.
Who:   Called by the auth routes. The TokenService instance is built once at
       startup and handed in, so the service never reads the secret itself.

Login failures are deliberately uniform: an unknown email, a wrong password
and a deactivated account all raise the same AuthenticationError, and an
unknown email still pays for one bcrypt verification.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from noteworthy.database import storage_guard
from noteworthy.exceptions import AuthenticationError, ConflictError, ValidationError
from noteworthy.models.user import User
from noteworthy.schemas.user import AuthResponse, UserResponse
from noteworthy.security.identity import Authenticated, Identity, require_user
from noteworthy.security.passwords import hash_password, needs_rehash, pwd_context, verify_password
from noteworthy.security.tokens import TokenService
from noteworthy.services.common import ensure_active_user
from noteworthy.services.folder_service import folder_service
from noteworthy.services.validation import normalize_email, validate_full_name, validate_password

logger = logging.getLogger(__name__)


class UserService:
    """Account operations; stateless apart from the injected TokenService."""

    def __init__(self, token_service: TokenService):
        self._tokens = token_service

    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        full_name: Optional[str] = None,
    ) -> AuthResponse:
        """
        Create an account, its default folder, and a first access token.

        Raises:
            ValidationError: malformed email, weak password, bad full name
            ConflictError: the email is already registered
        """
        email = normalize_email(email)
        validate_password(password)
        full_name = validate_full_name(full_name)

        async with storage_guard(db, "user.register"):
            existing = await db.scalar(select(User.id).where(User.email == email))
            if existing is not None:
                raise ConflictError(message="Email already registered", context={"field": "email"})

            user = User(
                email=email,
                password_hash=hash_password(password),
                full_name=full_name,
                is_active=True,
            )
            db.add(user)
            try:
                await db.flush()
            except IntegrityError as e:
                raise ConflictError(
                    message="Email already registered", context={"field": "email"}
                ) from e

        await folder_service.ensure_default_folder(db, Authenticated(user_id=user.id))

        logger.info("User %s registered", user.id)
        return self._auth_response(user)

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """Exchange email and password for an access token."""
        try:
            email = normalize_email(email)
        except ValidationError:
            raise AuthenticationError(reason="malformed email")

        async with storage_guard(db, "user.login"):
            user = await db.scalar(select(User).where(User.email == email))

            if user is None:
                pwd_context.dummy_verify()
                logger.warning("Login failed: unknown account")
                raise AuthenticationError(reason="unknown email")
            if not verify_password(password, user.password_hash):
                logger.warning("Login failed for user %s: bad password", user.id)
                raise AuthenticationError(reason="bad password")
            if not user.is_active:
                logger.warning("Login refused for deactivated user %s", user.id)
                raise AuthenticationError(reason="inactive")

            if needs_rehash(user.password_hash):
                user.password_hash = hash_password(password)
                await db.flush()

        logger.info("User %s logged in", user.id)
        return self._auth_response(user)

    async def me(self, db: AsyncSession, identity: Identity) -> UserResponse:
        user_id = require_user(identity)
        async with storage_guard(db, "user.me"):
            user = await db.scalar(select(User).where(User.id == user_id))
            if user is None or not user.is_active:
                raise AuthenticationError(reason="unknown or inactive user")
        return UserResponse.model_validate(user)

    async def deactivate(self, db: AsyncSession, identity: Identity) -> UserResponse:
        """
        Disable the caller's account.

        Outstanding tokens keep verifying, but every service re-reads the
        active flag, so they stop working immediately.
        """
        user_id = require_user(identity)
        async with storage_guard(db, "user.deactivate"):
            await ensure_active_user(db, user_id, lock=True)
            user = await db.scalar(select(User).where(User.id == user_id))
            user.is_active = False
            await db.flush()

        logger.info("User %s deactivated", user_id)
        return UserResponse.model_validate(user)

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(
            access_token=self._tokens.issue(user.id, user.email),
            expires_in=int(self._tokens.ttl.total_seconds()),
            user=UserResponse.model_validate(user),
        )
