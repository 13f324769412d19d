"""
Noteworthy Backend - Shared Service Helpers
=============================================

What:  Small helpers every service uses: the active-user re-check, the UNSET
       sentinel for partial updates, and LIKE-pattern escaping.
"""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from noteworthy.exceptions import AuthenticationError
from noteworthy.models.user import User


class _Unset:
    """Marks an optional argument the caller did not pass (distinct from None)."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


async def ensure_active_user(db: AsyncSession, user_id: uuid.UUID, lock: bool = False) -> None:
    """
    Re-read the caller's row and fail unless the account exists and is active.

    Tokens stay valid for their whole lifetime, so this fresh read is what
    makes a deactivation effective immediately. With `lock=True` the user row
    is locked FOR UPDATE, which serializes structural changes to that user's
    folder tree on PostgreSQL.
    """
    stmt = select(User.is_active).where(User.id == user_id)
    if lock:
        stmt = stmt.with_for_update()
    is_active = await db.scalar(stmt)
    if not is_active:
        raise AuthenticationError(reason="unknown or inactive user")


def escape_like(value: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return (
        value.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )
