"""Folder service layer (content index tree).

Every user has exactly one root folder (``parent_id`` NULL), created on
demand. Folders are private to their owner. Reparenting must never make a
folder its own ancestor: the owner's folders are loaded as an arena
``{id: parent_id}`` and the prospective parent's ancestor chain is walked
before the move is written. No folder may sit more than MAX_FOLDER_DEPTH
levels below the root (depth 0), on create and on reparent alike.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from galera.auth.context import Actor
from galera.auth.permissions import Permission, require_folder_permission
from galera.config import get_settings
from galera.db.models import Folder
from galera.db.session import transaction
from galera.errors import (
    ApiErrorCode,
    ConflictError,
    CycleRejectedError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
)
from galera.logging import get_logger
from galera.schemas.folders import FolderOut

logger = get_logger(__name__)

ROOT_FOLDER_NAME = "root"
MAX_FOLDER_NAME_LENGTH = 255


def _validate_name(name: str) -> str:
    name = name.strip()
    if not name or len(name) > MAX_FOLDER_NAME_LENGTH or "/" in name:
        raise InvalidRequestError(
            ApiErrorCode.E_NAME_INVALID,
            f"Folder name must be 1-{MAX_FOLDER_NAME_LENGTH} characters without '/'",
        )
    return name


def _require_user(actor: Actor) -> int:
    if actor.user_id is None:
        raise UnauthenticatedError()
    return actor.user_id


def load_folder(db: Session, folder_external_id: UUID) -> Folder:
    """Load a folder row by external id or raise NotFoundError."""
    folder = db.scalar(select(Folder).where(Folder.external_id == folder_external_id))
    if folder is None:
        raise NotFoundError(ApiErrorCode.E_FOLDER_NOT_FOUND, "Folder not found")
    return folder


def load_owned_folder(
    db: Session, actor: Actor, folder_external_id: UUID, required: Permission
) -> Folder:
    """Load a folder and enforce the actor's access (masked 404 when invisible)."""
    folder = load_folder(db, folder_external_id)
    require_folder_permission(db, actor, folder, required)
    return folder


def folder_to_out(db: Session, folder: Folder) -> FolderOut:
    parent_external_id = None
    if folder.parent_id is not None:
        parent_external_id = db.scalar(
            select(Folder.external_id).where(Folder.id == folder.parent_id)
        )
    return FolderOut(
        id=folder.external_id,
        name=folder.name,
        parent_id=parent_external_id,
        created_at=folder.created_at,
    )


def _ensure_unique_sibling_name(
    db: Session, owner_id: int, parent_id: int, name: str, exclude_id: int | None = None
) -> None:
    query = select(Folder.id).where(
        Folder.owner_id == owner_id,
        Folder.parent_id == parent_id,
        Folder.name == name,
    )
    if exclude_id is not None:
        query = query.where(Folder.id != exclude_id)
    if db.scalar(query) is not None:
        raise ConflictError(
            ApiErrorCode.E_FOLDER_NAME_TAKEN, "A folder with this name already exists here"
        )


def ensure_root_folder(db: Session, owner_id: int) -> Folder:
    """Return the owner's root folder, creating it on first use."""
    root = db.scalar(
        select(Folder)
        .where(Folder.owner_id == owner_id, Folder.parent_id.is_(None))
        .order_by(Folder.id)
    )
    if root is not None:
        return root

    root = Folder(owner_id=owner_id, parent_id=None, name=ROOT_FOLDER_NAME)
    with transaction(db):
        db.add(root)
    logger.info("root_folder_created", owner_id=owner_id)
    return root


def get_root_folder(db: Session, actor: Actor) -> FolderOut:
    """Return the actor's root folder."""
    return folder_to_out(db, ensure_root_folder(db, _require_user(actor)))


def create_folder(
    db: Session, actor: Actor, name: str, parent_external_id: UUID | None = None
) -> FolderOut:
    """Create a folder under ``parent_external_id`` (the actor's root when None).

    Raises:
        NotFoundError: Parent does not exist or is not the actor's.
        InvalidRequestError: The new folder would exceed MAX_FOLDER_DEPTH.
        ConflictError: A sibling already has this name.
    """
    owner_id = _require_user(actor)
    name = _validate_name(name)

    if parent_external_id is None:
        parent = ensure_root_folder(db, owner_id)
    else:
        parent = load_owned_folder(db, actor, parent_external_id, Permission.READ_WRITE)

    max_depth = get_settings().max_folder_depth
    with transaction(db):
        arena = load_arena(db, owner_id)
        check_depth(folder_depth(arena, parent.id, max_depth) + 1, max_depth)
        _ensure_unique_sibling_name(db, owner_id, parent.id, name)
        folder = Folder(owner_id=owner_id, parent_id=parent.id, name=name)
        db.add(folder)

    logger.info("folder_created", folder_id=str(folder.external_id))
    return FolderOut(
        id=folder.external_id,
        name=folder.name,
        parent_id=parent.external_id,
        created_at=folder.created_at,
    )


def get_folder(db: Session, actor: Actor, folder_external_id: UUID) -> FolderOut:
    folder = load_owned_folder(db, actor, folder_external_id, Permission.READ)
    return folder_to_out(db, folder)


def list_child_folders(db: Session, actor: Actor, folder_external_id: UUID) -> list[FolderOut]:
    """List the direct subfolders of a folder, by name."""
    folder = load_owned_folder(db, actor, folder_external_id, Permission.READ)
    children = db.scalars(
        select(Folder).where(Folder.parent_id == folder.id).order_by(Folder.name, Folder.id)
    ).all()
    return [
        FolderOut(
            id=child.external_id,
            name=child.name,
            parent_id=folder.external_id,
            created_at=child.created_at,
        )
        for child in children
    ]


def rename_folder(db: Session, actor: Actor, folder_external_id: UUID, name: str) -> FolderOut:
    name = _validate_name(name)
    with transaction(db):
        folder = load_owned_folder(db, actor, folder_external_id, Permission.READ_WRITE)
        if folder.parent_id is not None:
            _ensure_unique_sibling_name(db, folder.owner_id, folder.parent_id, name, folder.id)
        folder.name = name

    logger.info("folder_renamed", folder_id=str(folder.external_id))
    return folder_to_out(db, folder)


def load_arena(db: Session, owner_id: int) -> dict[int, int | None]:
    """Every folder of the owner, as ``{id: parent_id}``."""
    rows = db.execute(select(Folder.id, Folder.parent_id).where(Folder.owner_id == owner_id))
    return {row.id: row.parent_id for row in rows}


def folder_depth(arena: dict[int, int | None], folder_id: int, max_depth: int) -> int:
    """Number of ancestors above ``folder_id`` (the root has depth 0).

    The walk stops one step past ``max_depth``, which is enough for the
    caller to reject the tree.
    """
    depth = 0
    current = arena.get(folder_id)
    while current is not None and depth <= max_depth:
        depth += 1
        current = arena.get(current)
    return depth


def subtree_height(arena: dict[int, int | None], folder_id: int) -> int:
    """Levels below ``folder_id`` (0 for a folder without subfolders)."""
    children: dict[int, list[int]] = {}
    for child_id, parent_id in arena.items():
        if parent_id is not None:
            children.setdefault(parent_id, []).append(child_id)

    height = 0
    level = children.get(folder_id, [])
    seen = {folder_id}
    while level:
        height += 1
        seen.update(level)
        level = [
            child
            for node in level
            for child in children.get(node, [])
            if child not in seen
        ]
    return height


def check_depth(depth: int, max_depth: int) -> None:
    if depth > max_depth:
        raise InvalidRequestError(
            ApiErrorCode.E_FOLDER_TOO_DEEP,
            f"Folders cannot be nested more than {max_depth} levels deep",
        )


def check_reparent(
    arena: dict[int, int | None], folder_id: int, new_parent_id: int, max_depth: int
) -> None:
    """Walk the ancestor chain of ``new_parent_id`` and reject cycles.

    Args:
        arena: Every folder of the owner, as ``{id: parent_id}``.
        folder_id: Folder being moved.
        new_parent_id: Prospective parent.
        max_depth: Deepest level a folder may sit at; the walk gives up past it.

    Raises:
        CycleRejectedError: ``folder_id`` is ``new_parent_id`` or one of its
            ancestors, or the chain never reaches a root within the bound.
    """
    current: int | None = new_parent_id
    steps = 0
    while current is not None:
        if current == folder_id:
            raise CycleRejectedError()
        steps += 1
        if steps > max_depth + 1:
            raise CycleRejectedError(
                ApiErrorCode.E_CYCLE_REJECTED,
                "Folder ancestry does not reach a root folder",
            )
        current = arena.get(current)


def reparent_folder(
    db: Session, actor: Actor, folder_external_id: UUID, new_parent_external_id: UUID
) -> FolderOut:
    """Move a folder under a new parent.

    Raises:
        NotFoundError: Either folder is missing or not the actor's.
        InvalidRequestError: The folder is the actor's root, or the moved
            subtree would end up deeper than MAX_FOLDER_DEPTH.
        CycleRejectedError: The move would make the folder its own ancestor.
        ConflictError: The new parent already has a child with this name.
    """
    settings = get_settings()
    with transaction(db):
        folder = load_owned_folder(db, actor, folder_external_id, Permission.READ_WRITE)
        new_parent = load_owned_folder(db, actor, new_parent_external_id, Permission.READ_WRITE)

        if folder.parent_id is None:
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_REQUEST, "The root folder cannot be moved"
            )

        max_depth = settings.max_folder_depth
        arena = load_arena(db, folder.owner_id)
        check_reparent(arena, folder.id, new_parent.id, max_depth)
        check_depth(
            folder_depth(arena, new_parent.id, max_depth) + 1 + subtree_height(arena, folder.id),
            max_depth,
        )

        if folder.parent_id != new_parent.id:
            _ensure_unique_sibling_name(db, folder.owner_id, new_parent.id, folder.name, folder.id)
            folder.parent_id = new_parent.id

    logger.info(
        "folder_moved",
        folder_id=str(folder.external_id),
        parent_id=str(new_parent.external_id),
    )
    return FolderOut(
        id=folder.external_id,
        name=folder.name,
        parent_id=new_parent.external_id,
        created_at=folder.created_at,
    )


def delete_folder(db: Session, actor: Actor, folder_external_id: UUID) -> None:
    """Delete a folder with all its subfolders and media (ON DELETE CASCADE)."""
    with transaction(db):
        folder = load_owned_folder(db, actor, folder_external_id, Permission.READ_WRITE)
        if folder.parent_id is None:
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_REQUEST, "The root folder cannot be deleted"
            )
        db.execute(delete(Folder).where(Folder.id == folder.id))
    db.expire_all()

    logger.info("folder_deleted", folder_id=str(folder_external_id))
