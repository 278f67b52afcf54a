"""Password hashing with bcrypt.

bcrypt is used directly (no passlib wrapper). It only looks at the first 72
bytes of its input and current releases refuse longer inputs, so passwords
are truncated to 72 UTF-8 bytes before hashing and verification.
"""

from functools import lru_cache

import bcrypt

from galera.config import get_settings

BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain: str, cost: int | None = None) -> str:
    """Return a bcrypt hash of ``plain`` using the configured work factor."""
    if cost is None:
        cost = get_settings().password_hash_cost
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if ``plain`` matches the bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        return False


@lru_cache(maxsize=8)
def _dummy_hash(cost: int) -> str:
    return hash_password("galera-timing-equalizer", cost=cost)


def burn_password_check(plain: str) -> None:
    """Run a bcrypt verification whose result is discarded.

    Called when there is no stored hash to compare against (unknown login,
    passwordless account) so that every password attempt costs the same.
    """
    verify_password(plain, _dummy_hash(get_settings().password_hash_cost))
