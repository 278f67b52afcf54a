"""Tests for the identity store: registration, password and federated login."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from galera.auth.context import Actor
from galera.db.models import FederatedIdentity, Folder, User
from galera.errors import (
    ApiErrorCode,
    ConflictError,
    InvalidCredentialError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
)
from galera.services import identity as identity_service
from tests.factories import DEFAULT_PASSWORD, create_folder, create_media, create_user


class TestRegistration:
    def test_register_creates_password_account(self, db_session: Session):
        out = identity_service.register_user(
            db_session, "alice_smith", "alice@example.com", DEFAULT_PASSWORD
        )

        assert out.username == "alice_smith"
        assert out.email == "alice@example.com"
        assert out.has_password is True

    @pytest.mark.parametrize("username", ["abc", "Alice_Smith", "1alice", "alice-smith", "a" * 31])
    def test_invalid_username_rejected(self, db_session: Session, username: str):
        with pytest.raises(InvalidRequestError) as exc:
            identity_service.register_user(db_session, username, "a@example.com", DEFAULT_PASSWORD)

        assert exc.value.code == ApiErrorCode.E_USERNAME_INVALID

    def test_invalid_email_rejected(self, db_session: Session):
        with pytest.raises(InvalidRequestError) as exc:
            identity_service.register_user(db_session, "alice_smith", "nope", DEFAULT_PASSWORD)

        assert exc.value.code == ApiErrorCode.E_EMAIL_INVALID

    def test_short_password_rejected(self, db_session: Session):
        with pytest.raises(InvalidRequestError) as exc:
            identity_service.register_user(db_session, "alice_smith", "a@example.com", "short")

        assert exc.value.code == ApiErrorCode.E_PASSWORD_INVALID

    def test_duplicate_username_rejected(self, db_session: Session):
        create_user(db_session, username="alice_smith")

        with pytest.raises(ConflictError) as exc:
            identity_service.register_user(
                db_session, "alice_smith", "other@example.com", DEFAULT_PASSWORD
            )

        assert exc.value.code == ApiErrorCode.E_USERNAME_TAKEN

    def test_duplicate_email_rejected(self, db_session: Session):
        create_user(db_session, username="alice_smith", email="shared@example.com")

        with pytest.raises(ConflictError) as exc:
            identity_service.register_user(
                db_session, "bob_jones", "shared@example.com", DEFAULT_PASSWORD
            )

        assert exc.value.code == ApiErrorCode.E_EMAIL_TAKEN


class TestResolvePassword:
    def test_resolve_by_username(self, db_session: Session):
        actor = create_user(db_session, username="alice_smith")

        user = identity_service.resolve_password(db_session, "alice_smith", DEFAULT_PASSWORD)

        assert user.id == actor.user_id

    def test_resolve_by_email(self, db_session: Session):
        actor = create_user(db_session, username="alice_smith", email="alice@example.com")

        user = identity_service.resolve_password(db_session, "alice@example.com", DEFAULT_PASSWORD)

        assert user.id == actor.user_id

    def test_unknown_login_is_not_found(self, db_session: Session):
        with pytest.raises(NotFoundError) as exc:
            identity_service.resolve_password(db_session, "ghost_user", DEFAULT_PASSWORD)

        assert exc.value.code == ApiErrorCode.E_USER_NOT_FOUND

    def test_wrong_password(self, db_session: Session):
        create_user(db_session, username="alice_smith")

        with pytest.raises(InvalidCredentialError) as exc:
            identity_service.resolve_password(db_session, "alice_smith", "wrong password")

        assert exc.value.code == ApiErrorCode.E_WRONG_PASSWORD

    def test_federated_account_has_no_password(self, db_session: Session):
        identity_service.resolve_federated(
            db_session, "google", "sub-1", email="fed@example.com"
        )

        with pytest.raises(InvalidCredentialError) as exc:
            identity_service.resolve_password(db_session, "fed@example.com", "anything-at-all")

        assert exc.value.code == ApiErrorCode.E_NO_PASSWORD_SET


class TestResolveFederated:
    def test_first_sight_provisions_passwordless_user(self, db_session: Session):
        user = identity_service.resolve_federated(
            db_session, "google", "sub-1", email="fed@example.com"
        )

        assert user.password_hash is None
        assert user.username is None
        assert user.email == "fed@example.com"

    def test_same_subject_resolves_to_same_user(self, db_session: Session):
        first = identity_service.resolve_federated(db_session, "google", "sub-1")
        second = identity_service.resolve_federated(db_session, "google", "sub-1")

        assert first.id == second.id
        count = db_session.scalar(select(func.count()).select_from(FederatedIdentity))
        assert count == 1

    def test_same_subject_different_provider_is_different_user(self, db_session: Session):
        first = identity_service.resolve_federated(db_session, "google", "sub-1")
        second = identity_service.resolve_federated(db_session, "github", "sub-1")

        assert first.id != second.id

    def test_taken_email_is_dropped(self, db_session: Session):
        create_user(db_session, username="alice_smith", email="alice@example.com")

        user = identity_service.resolve_federated(
            db_session, "google", "sub-1", email="alice@example.com"
        )

        assert user.email is None

    def test_set_password_enables_password_login(self, db_session: Session):
        user = identity_service.resolve_federated(
            db_session, "google", "sub-1", email="fed@example.com"
        )
        actor = Actor(user_id=user.id, user_external_id=user.external_id)

        out = identity_service.set_password(db_session, actor, "brand new password")

        assert out.has_password is True
        resolved = identity_service.resolve_password(
            db_session, "fed@example.com", "brand new password"
        )
        assert resolved.id == user.id


class TestAccount:
    def test_get_user_out_requires_authentication(self, db_session: Session):
        with pytest.raises(UnauthenticatedError):
            identity_service.get_user_out(db_session, Actor.anonymous())

    def test_delete_user_cascades_to_owned_rows(self, db_session: Session):
        actor = create_user(db_session)
        folder_id = create_folder(db_session, actor, "Holidays")
        create_media(db_session, actor, b"beach", folder_id=folder_id)
        identity_service.resolve_federated(db_session, "google", "sub-1")

        identity_service.delete_user(db_session, actor.user_external_id)

        assert db_session.get(User, actor.user_id) is None
        remaining = db_session.scalar(
            select(func.count()).select_from(Folder).where(Folder.owner_id == actor.user_id)
        )
        assert remaining == 0

    def test_delete_unknown_user_is_not_found(self, db_session: Session):
        actor = create_user(db_session)
        identity_service.delete_user(db_session, actor.user_external_id)

        with pytest.raises(NotFoundError):
            identity_service.delete_user(db_session, actor.user_external_id)
