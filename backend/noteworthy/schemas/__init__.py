# Schemas package init
"""
Noteworthy Backend - API Schemas
=================================

Pydantic request/response models, one module per resource:
    - user.py:   registration, login, profile
    - folder.py: folder CRUD, summaries, tree
    - note.py:   note CRUD, list, search
    - common.py: error envelope, health check
"""
