# Services package init
"""
Noteworthy Backend - Services Layer
=====================================

What:  Business logic layer sitting between routes (HTTP) and database (persistence).
How:   Every public method takes the request's AsyncSession and the caller's
       Identity explicitly, validates input, and returns Pydantic response models.

Service Inventory:
    - FolderService: per-user folder tree (names, order, default, cycles, cascade)
    - NoteService:   note lifecycle, pinning, view counting and search
    - UserService:   registration, login, profile and deactivation
    - title:         title synthesis and word counting (pure functions)
    - validation:    input normalization shared by the services

Routes stay thin: they resolve the identity once, call one service method,
and let the global exception handlers translate errors.
"""
