"""
Noteworthy Backend - Bearer Token Service
===========================================

What:  Issues and verifies HMAC-signed JWTs that identify a user.
How:   python-jose encodes `{sub, email, iat, exp}`; verification checks the
       structure, the signature against the server secret, and expiry.
Who:   UserService issues tokens; `resolve_identity` verifies them.

Failure policy:
    Every verification failure (malformed, bad signature, wrong algorithm,
    expired, missing or non-UUID subject) raises the same AuthenticationError.
    The distinguishing reason is kept on the exception for server-side logs
    only. Only the subject is returned; callers re-read everything else
    (active flag, email) from storage.

The service holds no mutable state: the secret is injected at construction
and the clock is a plain callable.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from noteworthy.config import settings
from noteworthy.exceptions import AuthenticationError

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Sign and verify bearer tokens with a fixed, process-lifetime secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl: timedelta = timedelta(hours=24),
        clock: Optional[Clock] = None,
    ):
        if not secret:
            raise ValueError("TokenService requires a non-empty secret")
        self._secret = secret
        self._algorithm = algorithm
        self._ttl = ttl
        self._clock = clock or _utcnow

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, user_id: uuid.UUID, email: str) -> str:
        """Create a token valid for `ttl` from now."""
        now = self._clock()
        claims = {
            "sub": str(user_id),
            "email": email,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> uuid.UUID:
        """
        Return the subject user id of a valid token.

        Raises:
            AuthenticationError: for any kind of invalid token
        """
        if not token or token.count(".") != 2:
            raise AuthenticationError(reason="malformed")

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_aud": False},
            )
        except ExpiredSignatureError:
            raise AuthenticationError(reason="expired")
        except JWTError:
            raise AuthenticationError(reason="invalid")

        if "exp" not in claims:
            raise AuthenticationError(reason="missing exp")

        try:
            return uuid.UUID(str(claims["sub"]))
        except (KeyError, ValueError):
            raise AuthenticationError(reason="invalid subject")


def build_token_service() -> TokenService:
    """Construct the process-wide TokenService from settings (called at startup)."""
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl=timedelta(hours=settings.jwt_expire_hours),
    )
