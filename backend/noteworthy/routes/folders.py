"""
Noteworthy Backend - Folder Route Handlers
============================================

What:  CRUD for the caller's folder tree plus move, tree and default-folder
       endpoints under /api/folders.
How:   Each handler resolves the identity (dependency), calls exactly one
       FolderService method and returns its schema. Errors are translated by
       the global exception handlers in main.py.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from noteworthy.database import get_db_session
from noteworthy.dependencies import get_identity
from noteworthy.schemas.common import ErrorResponse
from noteworthy.schemas.folder import (
    FolderCreateRequest,
    FolderDeleteResponse,
    FolderListResponse,
    FolderMoveRequest,
    FolderResponse,
    FolderTreeNode,
    FolderUpdateRequest,
)
from noteworthy.security.identity import Identity
from noteworthy.services.common import UNSET
from noteworthy.services.folder_service import folder_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["Folders"])

_COMMON_ERRORS = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    404: {"description": "Folder not found", "model": ErrorResponse},
    503: {"description": "Storage temporarily unavailable", "model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=FolderResponse,
    responses={
        **_COMMON_ERRORS,
        400: {"description": "Invalid name or position", "model": ErrorResponse},
        409: {"description": "Sibling name already used", "model": ErrorResponse},
    },
    summary="Create a folder",
)
async def create_folder(
    body: FolderCreateRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    return await folder_service.create_folder(
        db,
        identity,
        name=body.name,
        description=body.description,
        color=body.color,
        icon=body.icon,
        parent_id=body.parent_id,
        position=body.position,
    )


@router.get(
    "",
    response_model=FolderListResponse,
    responses=_COMMON_ERRORS,
    summary="List folders",
)
async def list_folders(
    parent_id: Optional[UUID] = Query(default=None, description="Only children of this folder"),
    root_only: bool = Query(default=False, description="Only top-level folders"),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> FolderListResponse:
    """
    Without filters every folder is returned (flat, ordered by position).
    `parent_id` narrows to one folder's children; `root_only` to the roots.
    """
    scope = parent_id if parent_id is not None else (None if root_only else UNSET)
    return await folder_service.list_folders(db, identity, parent_id=scope)


@router.get(
    "/tree",
    response_model=List[FolderTreeNode],
    responses=_COMMON_ERRORS,
    summary="Nested folder tree",
)
async def folder_tree(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> List[FolderTreeNode]:
    return await folder_service.folder_tree(db, identity)


@router.post(
    "/default",
    response_model=FolderResponse,
    responses=_COMMON_ERRORS,
    summary="Return the default folder, creating it if the caller has none",
)
async def default_folder(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    return await folder_service.ensure_default_folder(db, identity)


@router.get(
    "/{folder_id}",
    response_model=FolderResponse,
    responses=_COMMON_ERRORS,
    summary="Get a folder",
)
async def get_folder(
    folder_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    return await folder_service.get_folder(db, identity, folder_id)


@router.patch(
    "/{folder_id}",
    response_model=FolderResponse,
    responses={
        **_COMMON_ERRORS,
        400: {"description": "Invalid name or position", "model": ErrorResponse},
        409: {"description": "Name conflict or cycle", "model": ErrorResponse},
    },
    summary="Update a folder",
)
async def update_folder(
    folder_id: UUID,
    body: FolderUpdateRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    # An explicit null means "move to root" / "clear"; an absent key means "keep"
    parent_id = body.parent_id if "parent_id" in body.model_fields_set else UNSET
    description = body.description if "description" in body.model_fields_set else UNSET
    return await folder_service.update_folder(
        db,
        identity,
        folder_id,
        name=body.name,
        description=description,
        color=body.color,
        icon=body.icon,
        parent_id=parent_id,
        position=body.position,
    )


@router.post(
    "/{folder_id}/move",
    response_model=FolderResponse,
    responses={
        **_COMMON_ERRORS,
        409: {"description": "Name conflict or cycle", "model": ErrorResponse},
    },
    summary="Move a folder under a new parent",
)
async def move_folder(
    folder_id: UUID,
    body: FolderMoveRequest,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> FolderResponse:
    return await folder_service.move_folder(
        db, identity, folder_id, parent_id=body.parent_id, position=body.position
    )


@router.delete(
    "/{folder_id}",
    response_model=FolderDeleteResponse,
    responses=_COMMON_ERRORS,
    summary="Delete a folder and its subfolders",
    description="Notes inside the removed folders are kept and moved out of any folder.",
)
async def delete_folder(
    folder_id: UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db_session),
) -> FolderDeleteResponse:
    return await folder_service.delete_folder(db, identity, folder_id)
