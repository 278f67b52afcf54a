"""Tests for the folder tree: root folder, CRUD and cycle-safe reparenting."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from galera.auth.context import Actor
from galera.config import clear_settings_cache
from galera.db.models import Folder, Media
from galera.errors import (
    ApiErrorCode,
    ConflictError,
    CycleRejectedError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
)
from galera.services import folders as folders_service
from galera.services.folders import (
    ROOT_FOLDER_NAME,
    check_reparent,
    folder_depth,
    subtree_height,
)
from tests.factories import create_folder, create_media, create_user, root_folder_id


class TestRootFolder:
    def test_root_folder_created_once(self, db_session: Session):
        actor = create_user(db_session)

        first = folders_service.get_root_folder(db_session, actor)
        second = folders_service.get_root_folder(db_session, actor)

        assert first.id == second.id
        assert first.name == ROOT_FOLDER_NAME
        assert first.parent_id is None

    def test_anonymous_has_no_root(self, db_session: Session):
        with pytest.raises(UnauthenticatedError):
            folders_service.get_root_folder(db_session, Actor.anonymous())

    def test_root_cannot_be_deleted(self, db_session: Session):
        actor = create_user(db_session)
        root_id = root_folder_id(db_session, actor)

        with pytest.raises(InvalidRequestError):
            folders_service.delete_folder(db_session, actor, root_id)

    def test_root_cannot_be_moved(self, db_session: Session):
        actor = create_user(db_session)
        root_id = root_folder_id(db_session, actor)
        child_id = create_folder(db_session, actor, "Child")

        with pytest.raises((InvalidRequestError, CycleRejectedError)):
            folders_service.reparent_folder(db_session, actor, root_id, child_id)


class TestFolderCrud:
    def test_create_defaults_to_root_parent(self, db_session: Session):
        actor = create_user(db_session)

        out = folders_service.create_folder(db_session, actor, "Holidays")

        assert out.parent_id == root_folder_id(db_session, actor)

    def test_list_children_sorted_by_name(self, db_session: Session):
        actor = create_user(db_session)
        parent_id = create_folder(db_session, actor, "Photos")
        create_folder(db_session, actor, "Zebra", parent_id)
        create_folder(db_session, actor, "Apple", parent_id)

        children = folders_service.list_child_folders(db_session, actor, parent_id)

        assert [child.name for child in children] == ["Apple", "Zebra"]

    def test_sibling_names_are_unique(self, db_session: Session):
        actor = create_user(db_session)
        create_folder(db_session, actor, "Holidays")

        with pytest.raises(ConflictError) as exc:
            create_folder(db_session, actor, "Holidays")

        assert exc.value.code == ApiErrorCode.E_FOLDER_NAME_TAKEN

    def test_same_name_allowed_under_different_parents(self, db_session: Session):
        actor = create_user(db_session)
        first = create_folder(db_session, actor, "2024")
        second = create_folder(db_session, actor, "2025")

        create_folder(db_session, actor, "Summer", first)
        create_folder(db_session, actor, "Summer", second)

    @pytest.mark.parametrize("name", ["", "   ", "a/b", "x" * 256])
    def test_invalid_names_rejected(self, db_session: Session, name: str):
        actor = create_user(db_session)

        with pytest.raises(InvalidRequestError) as exc:
            folders_service.create_folder(db_session, actor, name)

        assert exc.value.code == ApiErrorCode.E_NAME_INVALID

    def test_rename(self, db_session: Session):
        actor = create_user(db_session)
        folder_id = create_folder(db_session, actor, "Old")

        out = folders_service.rename_folder(db_session, actor, folder_id, "New")

        assert out.name == "New"

    def test_other_users_folder_is_not_found(self, db_session: Session):
        owner = create_user(db_session)
        stranger = create_user(db_session)
        folder_id = create_folder(db_session, owner, "Private")

        with pytest.raises(NotFoundError) as exc:
            folders_service.get_folder(db_session, stranger, folder_id)

        assert exc.value.code == ApiErrorCode.E_FOLDER_NOT_FOUND

    def test_delete_cascades_to_subfolders_and_media(self, db_session: Session):
        actor = create_user(db_session)
        parent_id = create_folder(db_session, actor, "Parent")
        child_id = create_folder(db_session, actor, "Child", parent_id)
        create_media(db_session, actor, b"in-child", folder_id=child_id)

        folders_service.delete_folder(db_session, actor, parent_id)

        assert db_session.scalar(select(func.count()).select_from(Media)) == 0
        folders = db_session.scalar(select(func.count()).select_from(Folder))
        assert folders == 1  # only the root is left


class TestReparent:
    def test_move_into_sibling(self, db_session: Session):
        actor = create_user(db_session)
        a = create_folder(db_session, actor, "A")
        b = create_folder(db_session, actor, "B")

        out = folders_service.reparent_folder(db_session, actor, a, b)

        assert out.parent_id == b

    def test_move_into_itself_rejected(self, db_session: Session):
        actor = create_user(db_session)
        a = create_folder(db_session, actor, "A")

        with pytest.raises(CycleRejectedError):
            folders_service.reparent_folder(db_session, actor, a, a)

    @pytest.mark.parametrize("depth", [1, 2, 5])
    def test_move_into_any_descendant_rejected(self, db_session: Session, depth: int):
        actor = create_user(db_session)
        top = create_folder(db_session, actor, "Top")
        chain = [top]
        for level in range(depth):
            chain.append(create_folder(db_session, actor, f"Level {level}", chain[-1]))

        for descendant in chain[1:]:
            with pytest.raises(CycleRejectedError):
                folders_service.reparent_folder(db_session, actor, top, descendant)

        # The tree is unchanged
        assert folders_service.get_folder(db_session, actor, top).parent_id == root_folder_id(
            db_session, actor
        )

    def test_move_into_other_users_folder_is_not_found(self, db_session: Session):
        owner = create_user(db_session)
        stranger = create_user(db_session)
        mine = create_folder(db_session, owner, "Mine")
        theirs = create_folder(db_session, stranger, "Theirs")

        with pytest.raises(NotFoundError):
            folders_service.reparent_folder(db_session, owner, mine, theirs)

    def test_move_onto_taken_name_conflicts(self, db_session: Session):
        actor = create_user(db_session)
        target = create_folder(db_session, actor, "Target")
        create_folder(db_session, actor, "Dup", target)
        moving = create_folder(db_session, actor, "Dup")

        with pytest.raises(ConflictError):
            folders_service.reparent_folder(db_session, actor, moving, target)


class TestFolderDepth:
    @pytest.fixture(autouse=True)
    def shallow_limit(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("MAX_FOLDER_DEPTH", "3")
        clear_settings_cache()

    def _nest(self, db_session: Session, actor: Actor, prefix: str, levels: int) -> list:
        chain = [create_folder(db_session, actor, f"{prefix} 1")]
        for level in range(2, levels + 1):
            chain.append(create_folder(db_session, actor, f"{prefix} {level}", chain[-1]))
        return chain

    def test_create_up_to_limit(self, db_session: Session):
        actor = create_user(db_session)

        chain = self._nest(db_session, actor, "Level", 3)

        assert folders_service.get_folder(db_session, actor, chain[-1]).parent_id == chain[1]

    def test_create_past_limit_rejected(self, db_session: Session):
        actor = create_user(db_session)
        chain = self._nest(db_session, actor, "Level", 3)

        with pytest.raises(InvalidRequestError) as exc:
            folders_service.create_folder(db_session, actor, "Level 4", chain[-1])

        assert exc.value.code == ApiErrorCode.E_FOLDER_TOO_DEEP
        assert folders_service.list_child_folders(db_session, actor, chain[-1]) == []

    def test_move_leaf_under_deepest_rejected(self, db_session: Session):
        actor = create_user(db_session)
        chain = self._nest(db_session, actor, "Level", 3)
        loose = create_folder(db_session, actor, "Loose")

        with pytest.raises(InvalidRequestError) as exc:
            folders_service.reparent_folder(db_session, actor, loose, chain[-1])

        assert exc.value.code == ApiErrorCode.E_FOLDER_TOO_DEEP

    def test_move_counts_height_of_moved_subtree(self, db_session: Session):
        actor = create_user(db_session)
        target = self._nest(db_session, actor, "Target", 2)
        moving = self._nest(db_session, actor, "Moving", 2)

        with pytest.raises(InvalidRequestError) as exc:
            folders_service.reparent_folder(db_session, actor, moving[0], target[-1])

        assert exc.value.code == ApiErrorCode.E_FOLDER_TOO_DEEP
        root_id = root_folder_id(db_session, actor)
        assert folders_service.get_folder(db_session, actor, moving[0]).parent_id == root_id

    def test_move_within_limit_succeeds(self, db_session: Session):
        actor = create_user(db_session)
        target = self._nest(db_session, actor, "Target", 1)
        moving = self._nest(db_session, actor, "Moving", 2)

        out = folders_service.reparent_folder(db_session, actor, moving[0], target[0])

        assert out.parent_id == target[0]
        assert folders_service.get_folder(db_session, actor, moving[1]).parent_id == moving[0]


class TestArenaHelpers:
    def test_folder_depth(self):
        arena = {1: None, 2: 1, 3: 2, 4: 3}

        assert folder_depth(arena, 1, max_depth=64) == 0
        assert folder_depth(arena, 4, max_depth=64) == 3

    def test_folder_depth_stops_past_bound(self):
        arena = {1: 2, 2: 1}

        assert folder_depth(arena, 1, max_depth=5) == 6

    def test_subtree_height(self):
        arena = {1: None, 2: 1, 3: 2, 4: 1, 5: 4, 6: 5}

        assert subtree_height(arena, 1) == 3
        assert subtree_height(arena, 2) == 1
        assert subtree_height(arena, 3) == 0


class TestCheckReparent:
    """The arena walk on its own, without a database."""

    def test_accepts_unrelated_parent(self):
        arena = {1: None, 2: 1, 3: 1}

        check_reparent(arena, folder_id=2, new_parent_id=3, max_depth=64)

    def test_rejects_descendant(self):
        arena = {1: None, 2: 1, 3: 2, 4: 3}

        with pytest.raises(CycleRejectedError):
            check_reparent(arena, folder_id=2, new_parent_id=4, max_depth=64)

    def test_walk_is_bounded(self):
        arena = {i: i - 1 for i in range(1, 20)}
        arena[0] = None

        with pytest.raises(CycleRejectedError):
            check_reparent(arena, folder_id=100, new_parent_id=19, max_depth=5)

    def test_corrupt_cycle_in_arena_terminates(self):
        arena = {1: 2, 2: 1}

        with pytest.raises(CycleRejectedError):
            check_reparent(arena, folder_id=3, new_parent_id=1, max_depth=10)
