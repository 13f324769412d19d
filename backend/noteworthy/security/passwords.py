"""
Noteworthy Backend - Password Hashing
=======================================

What:  Thin wrapper around passlib's CryptContext (bcrypt).
Who:   UserService at registration (hash) and login (verify).

The digest format is opaque to the rest of the application; `needs_rehash`
lets login transparently upgrade digests when the bcrypt cost changes.
"""

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# bcrypt only reads the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, digest: str) -> bool:
    """Return False (never raise) for a wrong password or an unreadable digest."""
    try:
        return pwd_context.verify(password, digest)
    except (ValueError, TypeError):
        return False


def needs_rehash(digest: str) -> bool:
    return pwd_context.needs_update(digest)
