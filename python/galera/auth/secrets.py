"""Opaque secrets: bearer tokens and URL slugs.

Bearer tokens are random URL-safe strings. Only their SHA-256 digest is ever
persisted, so a database dump does not yield usable credentials.
"""

import hashlib
import hmac
import secrets
import string

TOKEN_BYTES = 48
SLUG_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_token() -> str:
    """Return a fresh bearer secret (64 URL-safe characters)."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def hash_token(raw: str) -> str:
    """SHA-256 fingerprint of a bearer secret, used as its lookup key."""
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def tokens_match(presented: str, stored: str) -> bool:
    """Constant-time string comparison."""
    return hmac.compare_digest(presented.encode("utf-8"), stored.encode("utf-8"))


def generate_slug(length: int) -> str:
    """Random URL-safe slug of ``length`` characters."""
    return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(length))
