"""
Noteworthy Backend - Route Dependencies
=========================================

What:  FastAPI dependencies shared by the routers: the process-wide services
       stored on `app.state`, and the caller's Identity.
How:   FastAPI caches a dependency's result for the duration of a request, so
       the Authorization header is parsed and verified exactly once per request
       no matter how many parameters depend on `get_identity`.
"""

from typing import Optional

from fastapi import Header, Request

from noteworthy.security.identity import Identity, resolve_identity
from noteworthy.security.tokens import TokenService
from noteworthy.services.user_service import UserService


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Identity:
    """
    Resolve the caller.

    No header → ANONYMOUS (services then refuse with 401). A header that is
    present but invalid fails the request immediately with 401.
    """
    return resolve_identity(authorization, get_token_service(request))
