# Routes package init
"""
Noteworthy Backend - API Routes Package
=========================================

Route Inventory:
    - auth.py:     /api/auth/register, /login, /me, /deactivate
    - folders.py:  /api/folders CRUD, /tree, /default, /{id}/move
    - notes.py:    /api/notes CRUD, /search, /{id}/view, /{id}/move, /{id}/pin
    - health.py:   GET /health (public)

Routes are THIN: they parse input, resolve the caller's identity once via
the `get_identity` dependency, call one service method and return its schema.
Business logic belongs in services.
"""
