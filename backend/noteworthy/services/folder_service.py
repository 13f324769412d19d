"""
Noteworthy Backend - Folder Service (Hierarchy Manager)
=========================================================

What:  Owns every invariant of a user's folder tree: sibling-unique names,
       sibling ordering, the default folder, cycle prevention and the cascade
       semantics of delete.
Who:   Called by the folder routes, by UserService at registration, and by
       NoteService (ownership check of a target folder).

Tree invariants:
    - A folder is never its own parent.
    - Following parent pointers from any folder terminates within N steps,
      N being the owner's folder count. Reparenting is refused with CycleError
      when the moved folder appears in the new parent's ancestor chain.
    - Names are unique per (owner, parent).
    - At most one folder per user is the default; a folder created while the
      user has no default becomes the default.

Delete semantics:
    Deleting a folder removes it and every transitive descendant. Notes in any
    removed folder are detached (folder_id = NULL), never deleted.

Concurrency:
    Structural mutations (create, update, move, delete) first lock the owner's
    user row FOR UPDATE, so tree changes for one user are linearized on
    PostgreSQL: a concurrent move of the same subtree waits, then re-runs its
    cycle check against the committed tree. All reads and writes of one call
    share the caller's transaction.

Ownership:
    Every query is filtered by the caller's user id; another user's folder is
    reported exactly like a missing one (NotFoundError).
"""

import logging
import uuid
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from noteworthy.database import storage_guard
from noteworthy.exceptions import ConflictError, CycleError, NotFoundError
from noteworthy.models.folder import DEFAULT_FOLDER_COLOR, DEFAULT_FOLDER_ICON, Folder
from noteworthy.models.note import Note
from noteworthy.schemas.folder import (
    FolderDeleteResponse,
    FolderListResponse,
    FolderResponse,
    FolderTreeNode,
)
from noteworthy.security.identity import Identity, require_user
from noteworthy.services.common import UNSET, ensure_active_user
from noteworthy.services.validation import validate_folder_name, validate_position

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_NAME = "My Notes"
DEFAULT_FOLDER_DESCRIPTION = "Default folder for all your notes"


def _parent_clause(parent_id: Optional[uuid.UUID]):
    if parent_id is None:
        return Folder.parent_id.is_(None)
    return Folder.parent_id == parent_id


class FolderService:
    """
    Business logic for the folder hierarchy.

    Stateless: every method receives the session and the caller's identity.
    Methods return response schemas; `get_owned_folder` is the one method
    that hands out an ORM row, for other services.
    """

    # ══════════════════════════════════════════════════════════════════════
    # Create
    # ══════════════════════════════════════════════════════════════════════

    async def create_folder(
        self,
        db: AsyncSession,
        identity: Identity,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        parent_id: Optional[uuid.UUID] = None,
        position: Optional[int] = None,
    ) -> FolderResponse:
        """
        Create a folder under `parent_id` (or at the root).

        Raises:
            AuthenticationError: anonymous or deactivated caller
            ValidationError: empty or too-long name, negative position
            NotFoundError: parent does not exist or belongs to someone else
            ConflictError: a sibling already has this name
        """
        user_id = require_user(identity)
        name = validate_folder_name(name)
        validate_position(position)

        async with storage_guard(db, "folder.create"):
            await ensure_active_user(db, user_id, lock=True)
            if parent_id is not None:
                await self._get_owned(db, user_id, parent_id)
            await self._assert_name_available(db, user_id, parent_id, name)

            if position is None:
                position = await self._next_position(db, user_id, parent_id)
            has_default = await self._find_default(db, user_id) is not None

            folder = Folder(
                name=name,
                description=description,
                color=color or DEFAULT_FOLDER_COLOR,
                icon=icon or DEFAULT_FOLDER_ICON,
                user_id=user_id,
                parent_id=parent_id,
                position=position,
                is_default=not has_default,
            )
            db.add(folder)
            await self._flush(db, name)

        logger.info(
            "Folder %s created for user %s (parent=%s, default=%s)",
            folder.id, user_id, parent_id, folder.is_default,
        )
        return self._to_response(folder)

    async def ensure_default_folder(self, db: AsyncSession, identity: Identity) -> FolderResponse:
        """
        Return the caller's default folder, creating it lazily if needed.

        If a root folder named "My Notes" already exists it is promoted to
        default instead of failing on the sibling-name rule.
        """
        user_id = require_user(identity)

        async with storage_guard(db, "folder.ensure_default"):
            await ensure_active_user(db, user_id, lock=True)
            folder = await self._find_default(db, user_id)
            if folder is None:
                folder = await db.scalar(
                    select(Folder).where(
                        Folder.user_id == user_id,
                        Folder.parent_id.is_(None),
                        Folder.name == DEFAULT_FOLDER_NAME,
                    )
                )
                if folder is not None:
                    folder.is_default = True
                else:
                    folder = Folder(
                        name=DEFAULT_FOLDER_NAME,
                        description=DEFAULT_FOLDER_DESCRIPTION,
                        color=DEFAULT_FOLDER_COLOR,
                        icon=DEFAULT_FOLDER_ICON,
                        user_id=user_id,
                        parent_id=None,
                        position=await self._next_position(db, user_id, None),
                        is_default=True,
                    )
                    db.add(folder)
                await self._flush(db, DEFAULT_FOLDER_NAME)
                logger.info("Default folder %s established for user %s", folder.id, user_id)
            counts = await self._counts(db, user_id, [folder.id])

        return self._to_response(folder, counts)

    # ══════════════════════════════════════════════════════════════════════
    # Read
    # ══════════════════════════════════════════════════════════════════════

    async def get_folder(
        self, db: AsyncSession, identity: Identity, folder_id: uuid.UUID
    ) -> FolderResponse:
        user_id = require_user(identity)
        async with storage_guard(db, "folder.get"):
            await ensure_active_user(db, user_id)
            folder = await self._get_owned(db, user_id, folder_id)
            counts = await self._counts(db, user_id, [folder.id])
        return self._to_response(folder, counts)

    async def get_owned_folder(
        self, db: AsyncSession, user_id: uuid.UUID, folder_id: uuid.UUID
    ) -> Folder:
        """ORM access for other services; caller already holds a storage guard."""
        return await self._get_owned(db, user_id, folder_id)

    async def list_folders(
        self,
        db: AsyncSession,
        identity: Identity,
        parent_id=UNSET,
    ) -> FolderListResponse:
        """
        List the caller's folders with note and subfolder counts.

        parent_id omitted → every folder; None → root folders; a folder id →
        that folder's direct children (NotFoundError if it is not the caller's).
        Ordered by position, then name.
        """
        user_id = require_user(identity)
        async with storage_guard(db, "folder.list"):
            await ensure_active_user(db, user_id)
            query = select(Folder).where(Folder.user_id == user_id)
            if parent_id is not UNSET:
                if parent_id is not None:
                    await self._get_owned(db, user_id, parent_id)
                query = query.where(_parent_clause(parent_id))
            query = query.order_by(Folder.position, Folder.name)

            folders = list((await db.execute(query)).scalars().all())
            counts = await self._counts(db, user_id, [f.id for f in folders])

        return FolderListResponse(
            folders=[self._to_response(f, counts) for f in folders],
            total_count=len(folders),
        )

    async def folder_tree(self, db: AsyncSession, identity: Identity) -> List[FolderTreeNode]:
        """Nested view of the caller's whole tree, roots first, siblings by position."""
        listing = await self.list_folders(db, identity)

        nodes: Dict[uuid.UUID, FolderTreeNode] = {
            f.id: FolderTreeNode(**f.model_dump()) for f in listing.folders
        }
        roots: List[FolderTreeNode] = []
        for folder in listing.folders:
            node = nodes[folder.id]
            parent = nodes.get(folder.parent_id) if folder.parent_id else None
            if parent is None:
                roots.append(node)
            else:
                parent.children.append(node)
        return roots

    # ══════════════════════════════════════════════════════════════════════
    # Update / Move
    # ══════════════════════════════════════════════════════════════════════

    async def update_folder(
        self,
        db: AsyncSession,
        identity: Identity,
        folder_id: uuid.UUID,
        name: Optional[str] = None,
        description=UNSET,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        parent_id=UNSET,
        position: Optional[int] = None,
    ) -> FolderResponse:
        """
        Update folder attributes and/or reparent it.

        `parent_id` left UNSET keeps the current parent; None moves the folder
        to the root. `description` follows the same rule: None clears it. The
        default flag cannot be changed here.

        Raises:
            NotFoundError: folder or new parent not owned by the caller
            CycleError: new parent is the folder itself or one of its descendants
            ConflictError: the (new) sibling set already uses the name
        """
        user_id = require_user(identity)
        new_name = validate_folder_name(name) if name is not None else None
        validate_position(position)

        async with storage_guard(db, "folder.update"):
            await ensure_active_user(db, user_id, lock=True)
            folder = await self._get_owned(db, user_id, folder_id, for_update=True)

            target_parent = folder.parent_id if parent_id is UNSET else parent_id
            parent_changed = target_parent != folder.parent_id
            if parent_changed and target_parent is not None:
                await self._get_owned(db, user_id, target_parent)
                await self._assert_acyclic(db, user_id, folder.id, target_parent)

            effective_name = new_name or folder.name
            if parent_changed or effective_name != folder.name:
                await self._assert_name_available(
                    db, user_id, target_parent, effective_name, exclude_id=folder.id
                )

            if parent_changed and position is None:
                position = await self._next_position(db, user_id, target_parent)

            folder.name = effective_name
            folder.parent_id = target_parent
            if position is not None:
                folder.position = position
            if description is not UNSET:
                folder.description = description
            if color is not None:
                folder.color = color
            if icon is not None:
                folder.icon = icon

            await self._flush(db, effective_name)
            counts = await self._counts(db, user_id, [folder.id])

        if parent_changed:
            logger.info("Folder %s moved to parent %s", folder.id, target_parent)
        return self._to_response(folder, counts)

    async def move_folder(
        self,
        db: AsyncSession,
        identity: Identity,
        folder_id: uuid.UUID,
        parent_id: Optional[uuid.UUID],
        position: Optional[int] = None,
    ) -> FolderResponse:
        """Reparent (and optionally reposition) a folder; see update_folder."""
        return await self.update_folder(
            db, identity, folder_id, parent_id=parent_id, position=position
        )

    # ══════════════════════════════════════════════════════════════════════
    # Delete
    # ══════════════════════════════════════════════════════════════════════

    async def delete_folder(
        self, db: AsyncSession, identity: Identity, folder_id: uuid.UUID
    ) -> FolderDeleteResponse:
        """
        Delete a folder and all of its descendants; detach their notes.

        The default folder may be deleted too; the user then has no default
        until the next create_folder() or ensure_default_folder().
        """
        user_id = require_user(identity)

        async with storage_guard(db, "folder.delete"):
            await ensure_active_user(db, user_id, lock=True)
            folder = await self._get_owned(db, user_id, folder_id, for_update=True)
            subtree = await self._collect_subtree(db, user_id, folder.id)

            detached_count = await db.scalar(
                select(func.count(Note.id)).where(
                    Note.user_id == user_id, Note.folder_id.in_(subtree)
                )
            ) or 0
            await db.execute(
                update(Note)
                .where(Note.user_id == user_id, Note.folder_id.in_(subtree))
                .values(folder_id=None, updated_at=Note.updated_at)
            )
            await db.execute(
                delete(Folder).where(Folder.user_id == user_id, Folder.id.in_(subtree))
            )

        logger.info(
            "Folder %s deleted with %d descendant(s); %d note(s) detached",
            folder_id, len(subtree) - 1, detached_count,
        )
        return FolderDeleteResponse(
            deleted_folder_ids=subtree,
            detached_note_count=detached_count,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Internal helpers (run inside the caller's storage guard)
    # ══════════════════════════════════════════════════════════════════════

    async def _get_owned(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        folder_id: uuid.UUID,
        for_update: bool = False,
    ) -> Folder:
        query = select(Folder).where(Folder.id == folder_id, Folder.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        folder = await db.scalar(query)
        if folder is None:
            raise NotFoundError(resource="folder", resource_id=str(folder_id))
        return folder

    async def _find_default(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[Folder]:
        return await db.scalar(
            select(Folder)
            .where(Folder.user_id == user_id, Folder.is_default.is_(True))
            .limit(1)
        )

    async def _assert_name_available(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        parent_id: Optional[uuid.UUID],
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Folder.id).where(
            Folder.user_id == user_id,
            _parent_clause(parent_id),
            Folder.name == name,
        )
        if exclude_id is not None:
            query = query.where(Folder.id != exclude_id)
        if await db.scalar(query.limit(1)) is not None:
            raise ConflictError(
                message=f"A folder named '{name}' already exists here",
                context={"name": name, "parent_id": str(parent_id) if parent_id else None},
            )

    async def _next_position(
        self, db: AsyncSession, user_id: uuid.UUID, parent_id: Optional[uuid.UUID]
    ) -> int:
        current_max = await db.scalar(
            select(func.max(Folder.position)).where(
                Folder.user_id == user_id, _parent_clause(parent_id)
            )
        )
        return 0 if current_max is None else current_max + 1

    async def _assert_acyclic(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        folder_id: uuid.UUID,
        new_parent_id: uuid.UUID,
    ) -> None:
        """
        Walk the ancestor chain of `new_parent_id` looking for `folder_id`.

        The walk takes at most as many steps as the user has folders; a chain
        that is still going after that is already cyclic and is refused too.
        """
        if new_parent_id == folder_id:
            raise CycleError(folder_id=str(folder_id), parent_id=str(new_parent_id))

        max_steps = await db.scalar(
            select(func.count(Folder.id)).where(Folder.user_id == user_id)
        ) or 0

        current: Optional[uuid.UUID] = new_parent_id
        steps = 0
        while current is not None:
            if current == folder_id:
                raise CycleError(folder_id=str(folder_id), parent_id=str(new_parent_id))
            steps += 1
            if steps > max_steps:
                logger.error("Ancestor walk from %s exceeded %d steps", new_parent_id, max_steps)
                raise CycleError(folder_id=str(folder_id), parent_id=str(new_parent_id))
            current = await db.scalar(
                select(Folder.parent_id).where(
                    Folder.id == current, Folder.user_id == user_id
                )
            )

    async def _collect_subtree(
        self, db: AsyncSession, user_id: uuid.UUID, root_id: uuid.UUID
    ) -> List[uuid.UUID]:
        """Breadth-first ids of `root_id` and all its descendants (root first)."""
        collected: List[uuid.UUID] = [root_id]
        seen = {root_id}
        frontier = [root_id]
        while frontier:
            children = (
                await db.execute(
                    select(Folder.id).where(
                        Folder.user_id == user_id, Folder.parent_id.in_(frontier)
                    )
                )
            ).scalars().all()
            frontier = [child for child in children if child not in seen]
            seen.update(frontier)
            collected.extend(frontier)
        return collected

    async def _counts(
        self, db: AsyncSession, user_id: uuid.UUID, folder_ids: List[uuid.UUID]
    ) -> Dict[uuid.UUID, Dict[str, int]]:
        """Note count and direct-subfolder count per folder id."""
        counts: Dict[uuid.UUID, Dict[str, int]] = {
            fid: {"note_count": 0, "subfolder_count": 0} for fid in folder_ids
        }
        if not folder_ids:
            return counts

        note_rows = await db.execute(
            select(Note.folder_id, func.count(Note.id))
            .where(Note.user_id == user_id, Note.folder_id.in_(folder_ids))
            .group_by(Note.folder_id)
        )
        for fid, total in note_rows.all():
            counts[fid]["note_count"] = total

        child_rows = await db.execute(
            select(Folder.parent_id, func.count(Folder.id))
            .where(Folder.user_id == user_id, Folder.parent_id.in_(folder_ids))
            .group_by(Folder.parent_id)
        )
        for fid, total in child_rows.all():
            counts[fid]["subfolder_count"] = total

        return counts

    async def _flush(self, db: AsyncSession, name: str) -> None:
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning("Folder write rejected by storage constraint: %s", type(e.orig).__name__)
            raise ConflictError(
                message=f"A folder named '{name}' already exists here",
                context={"name": name},
            ) from e

    @staticmethod
    def _to_response(
        folder: Folder, counts: Optional[Dict[uuid.UUID, Dict[str, int]]] = None
    ) -> FolderResponse:
        folder_counts = (counts or {}).get(folder.id, {})
        return FolderResponse(
            id=folder.id,
            name=folder.name,
            description=folder.description,
            color=folder.color,
            icon=folder.icon,
            parent_id=folder.parent_id,
            position=folder.position,
            is_default=folder.is_default,
            note_count=folder_counts.get("note_count", 0),
            subfolder_count=folder_counts.get("subfolder_count", 0),
            created_at=folder.created_at,
            updated_at=folder.updated_at,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
folder_service = FolderService()
