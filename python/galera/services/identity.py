"""Identity store.

Resolves presented credentials (password or federated identity) to a user
record. Usernames and emails are unique; a user may have no password at all
when the account was provisioned through a federated identity provider.
"""

import re
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from galera.auth.context import Actor
from galera.auth.passwords import burn_password_check, hash_password, verify_password
from galera.db.models import FederatedIdentity, User
from galera.db.session import transaction
from galera.errors import (
    ApiErrorCode,
    ConflictError,
    InvalidCredentialError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
)
from galera.logging import get_logger
from galera.schemas.auth import UserOut

logger = get_logger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]{4,29}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]+$")
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128


def user_to_out(user: User) -> UserOut:
    return UserOut(
        id=user.external_id,
        username=user.username,
        email=user.email,
        has_password=user.password_hash is not None,
        created_at=user.created_at,
    )


def validate_username(username: str) -> str:
    if not USERNAME_PATTERN.match(username):
        raise InvalidRequestError(
            ApiErrorCode.E_USERNAME_INVALID,
            "Username must be 5-30 lowercase letters, digits or underscores "
            "and must not start with a digit",
        )
    return username


def validate_email(email: str) -> str:
    email = email.strip()
    if len(email) > 255 or not EMAIL_PATTERN.match(email):
        raise InvalidRequestError(ApiErrorCode.E_EMAIL_INVALID, "Email address is invalid")
    return email


def validate_password(password: str) -> str:
    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        raise InvalidRequestError(
            ApiErrorCode.E_PASSWORD_INVALID,
            f"Password must be {MIN_PASSWORD_LENGTH}-{MAX_PASSWORD_LENGTH} characters",
        )
    return password


def get_user_by_external_id(db: Session, user_external_id: UUID) -> User:
    """Load a user by external id or raise NotFoundError."""
    user = db.scalar(select(User).where(User.external_id == user_external_id))
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")
    return user


def get_user_out(db: Session, actor: Actor) -> UserOut:
    """Return the authenticated actor's own account."""
    if actor.user_id is None:
        raise UnauthenticatedError()
    user = db.get(User, actor.user_id)
    if user is None:
        raise UnauthenticatedError()
    return user_to_out(user)


def register_user(db: Session, username: str, email: str, password: str) -> UserOut:
    """Create a password account.

    Raises:
        InvalidRequestError: Username, email or password fails validation.
        ConflictError: Username or email is already taken.
    """
    username = validate_username(username)
    email = validate_email(email)
    validate_password(password)

    if db.scalar(select(User.id).where(User.username == username)) is not None:
        raise ConflictError(ApiErrorCode.E_USERNAME_TAKEN, "Username is already taken")
    if db.scalar(select(User.id).where(User.email == email)) is not None:
        raise ConflictError(ApiErrorCode.E_EMAIL_TAKEN, "Email is already registered")

    user = User(username=username, email=email, password_hash=hash_password(password))
    try:
        with transaction(db):
            db.add(user)
    except IntegrityError:
        # Lost a race against a concurrent registration
        raise ConflictError(ApiErrorCode.E_CONFLICT, "Username or email is already taken") from None

    logger.info("user_registered", user_id=str(user.external_id))
    return user_to_out(user)


def resolve_password(db: Session, login: str, password: str) -> User:
    """Resolve a username-or-email and password to a user.

    ``login`` is treated as an email when it contains ``@``. bcrypt runs on
    every path so that unknown logins and wrong passwords cost the same.

    Raises:
        NotFoundError: No user with that username/email.
        InvalidCredentialError: Wrong password (E_WRONG_PASSWORD) or the account
            has no password (E_NO_PASSWORD_SET).
    """
    column = User.email if "@" in login else User.username
    user = db.scalar(select(User).where(column == login.strip()))

    if user is None:
        burn_password_check(password)
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")

    if user.password_hash is None:
        burn_password_check(password)
        raise InvalidCredentialError(
            ApiErrorCode.E_NO_PASSWORD_SET, "This account has no password set"
        )

    if not verify_password(password, user.password_hash):
        raise InvalidCredentialError(ApiErrorCode.E_WRONG_PASSWORD, "Wrong password")

    return user


def _find_federated_user(db: Session, provider_key: str, subject: str) -> User | None:
    return db.scalar(
        select(User)
        .join(FederatedIdentity, FederatedIdentity.user_id == User.id)
        .where(
            FederatedIdentity.provider_key == provider_key,
            FederatedIdentity.subject == subject,
        )
    )


def resolve_federated(
    db: Session, provider_key: str, subject: str, email: str | None = None
) -> User:
    """Resolve a federated (provider, subject) pair, provisioning a user on first sight.

    The new account is passwordless. ``email`` is recorded only when it is
    valid and not already used by another account. Concurrent first sight of
    the same pair is settled by the unique constraint: the losing transaction
    rolls back and reads the winner's row.
    """
    user = _find_federated_user(db, provider_key, subject)
    if user is not None:
        return user

    if email is not None:
        email = email.strip()
        if not EMAIL_PATTERN.match(email) or db.scalar(
            select(User.id).where(User.email == email)
        ) is not None:
            email = None

    new_user = User(email=email)
    try:
        with transaction(db):
            db.add(new_user)
            db.flush()
            db.add(
                FederatedIdentity(
                    provider_key=provider_key, subject=subject, user_id=new_user.id
                )
            )
    except IntegrityError:
        user = _find_federated_user(db, provider_key, subject)
        if user is None:
            raise
        return user

    logger.info(
        "federated_user_provisioned",
        user_id=str(new_user.external_id),
        provider_key=provider_key,
    )
    return new_user


def set_password(db: Session, actor: Actor, new_password: str) -> UserOut:
    """Set or replace the actor's password (lets federated accounts add one)."""
    if actor.user_id is None:
        raise UnauthenticatedError()
    validate_password(new_password)

    with transaction(db):
        user = db.get(User, actor.user_id)
        if user is None:
            raise UnauthenticatedError()
        user.password_hash = hash_password(new_password)

    logger.info("password_set", user_id=str(user.external_id))
    return user_to_out(user)


def delete_user(db: Session, user_external_id: UUID) -> None:
    """Delete a user and, through ON DELETE CASCADE, everything they own.

    Identities, tokens, folders, media, albums, invites and favorites go with
    the single DELETE.
    """
    with transaction(db):
        result = db.execute(delete(User).where(User.external_id == user_external_id))
        if result.rowcount == 0:
            raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")

    db.expire_all()
    logger.info("user_deleted", user_id=str(user_external_id))
