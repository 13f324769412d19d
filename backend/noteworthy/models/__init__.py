"""
Noteworthy Backend - ORM Models
================================

Importing this package registers every table with `Base.metadata`, which is
what Alembic autogenerate and the test-suite's `create_all` rely on.
"""

from noteworthy.models.user import User
from noteworthy.models.folder import Folder
from noteworthy.models.note import Note

__all__ = ["User", "Folder", "Note"]
