"""
Noteworthy Backend - Application Package Initializer
=====================================================

What: Marks the `noteworthy` directory as a Python package.
Who:  Imported by uvicorn (`noteworthy.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is layered; every user-owned operation receives the caller's
    identity as an explicit argument.

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, identity resolution
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Folder tree, note lifecycle, titles
    ├─────────────────────────────────────┤
    │  Security (Tokens, Identity, Hash)  │  ← Pure, never touches storage
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
