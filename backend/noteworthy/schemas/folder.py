"""
Noteworthy Backend - Folder Request/Response Schemas
======================================================

What:  Pydantic models for folder CRUD, summaries and the nested tree view.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class FolderCreateRequest(BaseModel):
    name: str = Field(description="Folder name, unique among its siblings (1-100 chars)")
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20, description="e.g. #3B82F6")
    icon: Optional[str] = Field(default=None, max_length=50)
    parent_id: Optional[uuid.UUID] = Field(default=None, description="Parent folder; null for root")
    position: Optional[int] = Field(default=None, ge=0, description="Sibling order; appended if omitted")


class FolderUpdateRequest(BaseModel):
    """
    Body of PATCH /api/folders/{id}.

    Only fields present in the request body are applied, so an explicit
    `"parent_id": null` moves the folder to the root while an absent
    `parent_id` leaves it where it is.
    """
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    icon: Optional[str] = Field(default=None, max_length=50)
    parent_id: Optional[uuid.UUID] = None
    position: Optional[int] = Field(default=None, ge=0)


class FolderMoveRequest(BaseModel):
    parent_id: Optional[uuid.UUID] = Field(default=None, description="New parent; null for root")
    position: Optional[int] = Field(default=None, ge=0)


class FolderResponse(BaseModel):
    """A folder with its computed note and direct-subfolder counts."""
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    parent_id: Optional[uuid.UUID] = None
    position: int
    is_default: bool
    note_count: int = 0
    subfolder_count: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FolderListResponse(BaseModel):
    folders: List[FolderResponse]
    total_count: int


class FolderTreeNode(FolderResponse):
    children: List["FolderTreeNode"] = Field(default_factory=list)


class FolderDeleteResponse(BaseModel):
    """Outcome of a cascade delete: folders removed, notes detached (never deleted)."""
    deleted_folder_ids: List[uuid.UUID]
    detached_note_count: int


FolderTreeNode.model_rebuild()
