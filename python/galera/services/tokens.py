"""Token issuer.

Credential pairs are opaque random secrets:
- a refresh token (long TTL) owned by a user
- access tokens (short TTL) minted from a refresh token

Only SHA-256 digests are stored. The raw secret is returned exactly once, by
the call that mints it. Revoking a refresh token is a single DELETE; the
store cascades to every access token minted from it. A refresh token's state
is derived from its timestamps when read, never stored.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from galera.auth.secrets import generate_token, hash_token, tokens_match
from galera.config import get_settings
from galera.db.models import AccessToken, RefreshToken, User
from galera.db.session import transaction
from galera.db.types import utcnow
from galera.errors import ExpiredError, InvalidTokenError, RevokedError
from galera.logging import get_logger
from galera.schemas.auth import IssuedToken, TokenPair
from galera.services.identity import resolve_federated, resolve_password

logger = get_logger(__name__)


class RefreshTokenState(str, Enum):
    """Lifecycle state of a refresh token, as of a given instant."""

    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"  # no row: revoked, rotated away, purged or never issued


# =============================================================================
# Lookup helpers
# =============================================================================


def _find_refresh_token(db: Session, raw: str) -> RefreshToken | None:
    digest = hash_token(raw)
    row = db.scalar(select(RefreshToken).where(RefreshToken.token_hash == digest))
    if row is None or not tokens_match(digest, row.token_hash):
        return None
    return row


def _find_access_token(db: Session, raw: str) -> AccessToken | None:
    digest = hash_token(raw)
    row = db.scalar(select(AccessToken).where(AccessToken.token_hash == digest))
    if row is None or not tokens_match(digest, row.token_hash):
        return None
    return row


def _add_refresh_token(
    db: Session, user_id: int, now: datetime
) -> tuple[RefreshToken, IssuedToken]:
    raw = generate_token()
    row = RefreshToken(
        user_id=user_id,
        token_hash=hash_token(raw),
        expires_at=now + get_settings().refresh_token_ttl,
        created_at=now,
    )
    db.add(row)
    db.flush()
    return row, IssuedToken(token=raw, expires_at=row.expires_at)


def _add_access_token(db: Session, refresh_row: RefreshToken, now: datetime) -> IssuedToken:
    raw = generate_token()
    row = AccessToken(
        refresh_token_id=refresh_row.id,
        token_hash=hash_token(raw),
        expires_at=now + get_settings().access_token_ttl,
        created_at=now,
    )
    db.add(row)
    db.flush()
    return IssuedToken(token=raw, expires_at=row.expires_at)


def _issue_pair(db: Session, user_id: int, now: datetime) -> TokenPair:
    refresh_row, refresh_token = _add_refresh_token(db, user_id, now)
    access_token = _add_access_token(db, refresh_row, now)
    return TokenPair(refresh_token=refresh_token, access_token=access_token)


# =============================================================================
# Issuance
# =============================================================================


def issue_refresh_token(db: Session, user_id: int, now: datetime | None = None) -> IssuedToken:
    """Mint a refresh token for a user with the configured TTL."""
    now = now or utcnow()
    with transaction(db):
        _, issued = _add_refresh_token(db, user_id, now)
    logger.info("refresh_token_issued", user_id=user_id)
    return issued


def issue_access_token(db: Session, refresh_token: str, now: datetime | None = None) -> IssuedToken:
    """Mint a short-lived access token from a refresh token.

    Raises:
        InvalidTokenError: The refresh token is unknown, revoked or expired.
    """
    now = now or utcnow()
    with transaction(db):
        row = _find_refresh_token(db, refresh_token)
        if row is None or now >= row.expires_at:
            raise InvalidTokenError()
        issued = _add_access_token(db, row, now)
    return issued


def login(db: Session, login: str, password: str, now: datetime | None = None) -> TokenPair:
    """Resolve a password login and issue a refresh + access pair.

    Identity errors propagate unchanged (see ``resolve_password``); collapsing
    them into a single outward error is the route's business.
    """
    now = now or utcnow()
    user = resolve_password(db, login, password)
    with transaction(db):
        pair = _issue_pair(db, user.id, now)
    logger.info("login_succeeded", user_id=str(user.external_id), method="password")
    return pair


def login_federated(
    db: Session,
    provider_key: str,
    subject: str,
    email: str | None = None,
    now: datetime | None = None,
) -> TokenPair:
    """Resolve (or provision) a federated identity and issue a token pair."""
    now = now or utcnow()
    user = resolve_federated(db, provider_key, subject, email=email)
    with transaction(db):
        pair = _issue_pair(db, user.id, now)
    logger.info("login_succeeded", user_id=str(user.external_id), method="federated")
    return pair


def rotate_refresh_token(db: Session, refresh_token: str, now: datetime | None = None) -> TokenPair:
    """Replace a refresh token with a new pair in one transaction.

    The old refresh token and every access token minted from it stop working.

    Raises:
        InvalidTokenError: The refresh token is unknown, revoked or expired.
    """
    now = now or utcnow()
    with transaction(db):
        row = _find_refresh_token(db, refresh_token)
        if row is None or now >= row.expires_at:
            raise InvalidTokenError()
        user_id = row.user_id
        db.execute(delete(RefreshToken).where(RefreshToken.id == row.id))
        pair = _issue_pair(db, user_id, now)
    logger.info("refresh_token_rotated", user_id=user_id)
    return pair


# =============================================================================
# Validation and revocation
# =============================================================================


def validate_access_token(db: Session, access_token: str, now: datetime | None = None) -> User:
    """Return the user an access token authenticates.

    An unknown token is reported as revoked: revocation removes the row
    through the cascade from its refresh token, leaving nothing to tell the
    two cases apart.

    Raises:
        ExpiredError: The access token is past its own expiration.
        RevokedError: The access token (or its refresh token) no longer exists.
    """
    now = now or utcnow()
    row = _find_access_token(db, access_token)
    if row is None:
        raise RevokedError()
    if now >= row.expires_at:
        raise ExpiredError()

    parent = db.get(RefreshToken, row.refresh_token_id)
    if parent is None:
        raise RevokedError()

    user = db.get(User, parent.user_id)
    if user is None:
        raise RevokedError()
    return user


def revoke_refresh_token(db: Session, refresh_token: str) -> bool:
    """Delete a refresh token (and, by cascade, its access tokens).

    Returns:
        True if a token was revoked, False if it did not exist.
    """
    digest = hash_token(refresh_token)
    with transaction(db):
        result = db.execute(delete(RefreshToken).where(RefreshToken.token_hash == digest))
    db.expire_all()

    revoked = result.rowcount > 0
    if revoked:
        logger.info("refresh_token_revoked")
    return revoked


def refresh_token_state(
    db: Session, refresh_token: str, now: datetime | None = None
) -> RefreshTokenState:
    """Derive the state of a refresh token from its stored timestamps."""
    now = now or utcnow()
    row = _find_refresh_token(db, refresh_token)
    if row is None:
        return RefreshTokenState.REVOKED
    if now >= row.expires_at:
        return RefreshTokenState.EXPIRED
    return RefreshTokenState.ACTIVE


def purge_expired_tokens(db: Session, now: datetime | None = None) -> int:
    """Delete every expired refresh and access token.

    Returns:
        Number of rows removed directly (cascaded access tokens not counted).
    """
    now = now or utcnow()
    with transaction(db):
        refresh_result = db.execute(delete(RefreshToken).where(RefreshToken.expires_at <= now))
        access_result = db.execute(delete(AccessToken).where(AccessToken.expires_at <= now))
    db.expire_all()

    purged = refresh_result.rowcount + access_result.rowcount
    logger.info("expired_tokens_purged", count=purged)
    return purged
