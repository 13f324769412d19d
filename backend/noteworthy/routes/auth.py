"""
Noteworthy Backend - Account Route Handlers
=============================================

What:  POST /api/auth/register, POST /api/auth/login, GET /api/auth/me,
       POST /api/auth/deactivate.
How:   Validates the JSON body with Pydantic, delegates to UserService.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from noteworthy.database import get_db_session
from noteworthy.dependencies import get_identity, get_user_service
from noteworthy.schemas.common import ErrorResponse
from noteworthy.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from noteworthy.security.identity import Identity
from noteworthy.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid email, password or name", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    users: UserService = Depends(get_user_service),
) -> AuthResponse:
    """Creates the account and its default folder, and returns a token."""
    return await users.register(
        db, email=body.email, password=body.password, full_name=body.full_name
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a bearer token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
    users: UserService = Depends(get_user_service),
) -> AuthResponse:
    return await users.login(db, email=body.email, password=body.password)


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
    summary="Current account",
)
async def me(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
    users: UserService = Depends(get_user_service),
) -> UserResponse:
    return await users.me(db, identity)


@router.post(
    "/deactivate",
    response_model=UserResponse,
    responses={401: {"description": "Not authenticated", "model": ErrorResponse}},
    summary="Deactivate the current account",
)
async def deactivate(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
    users: UserService = Depends(get_user_service),
) -> UserResponse:
    return await users.deactivate(db, identity)
