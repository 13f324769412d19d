"""
Noteworthy Backend - Request Identity
=======================================

What:  The per-request value describing who is calling: `Authenticated(user_id)`
       or `ANONYMOUS`.
How:   Built at most once per inbound operation by `resolve_identity`, then
       passed explicitly into every service call. There is no ambient or
       context-local identity; services only see what they are given.

Resolution rules:
    Authorization header absent/blank   → ANONYMOUS
    "Bearer <valid token>"              → Authenticated(sub)
    Anything else (wrong scheme, bad,
    forged or expired token)            → AuthenticationError (fail closed)
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Union

from noteworthy.exceptions import AuthenticationError
from noteworthy.security.tokens import TokenService


@dataclass(frozen=True)
class Authenticated:
    user_id: uuid.UUID

    @property
    def is_authenticated(self) -> bool:
        return True


@dataclass(frozen=True)
class Anonymous:
    @property
    def is_authenticated(self) -> bool:
        return False


ANONYMOUS = Anonymous()

Identity = Union[Authenticated, Anonymous]


def resolve_identity(authorization: Optional[str], verifier: TokenService) -> Identity:
    """Turn an optional Authorization header into an Identity."""
    if authorization is None or not authorization.strip():
        return ANONYMOUS

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError(reason="unsupported scheme")

    return Authenticated(user_id=verifier.verify(token.strip()))


def require_user(identity: Identity) -> uuid.UUID:
    """
    Return the caller's user id, or fail for an anonymous caller.

    Services call this before their first storage access, so an anonymous
    call never reaches the database.
    """
    if isinstance(identity, Authenticated):
        return identity.user_id
    raise AuthenticationError(reason="anonymous")
