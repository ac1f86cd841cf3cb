"""
auth/passwords.py -- Credential hashing (bcrypt, direct usage, no passlib wrapper).

Bcrypt is the right choice for low-entropy secrets because its cost factor
makes brute force expensive. The work factor is tunable through
Settings.bcrypt_rounds; tests run with the minimum (4).

bcrypt only looks at the first 72 bytes of input, and recent releases reject
longer input outright. Both functions truncate to 72 bytes so hashing and
verification always see the same bytes; the API caps passwords at 128
characters anyway.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12
_MAX_BCRYPT_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_MAX_BCRYPT_BYTES]


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValueError for an empty password -- the only failure mode.
    """
    if not plain:
        raise ValueError("Password must be a non-empty string.")
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A mismatch is a plain False. A malformed or empty digest raises ValueError:
    that is corrupt stored data, not a wrong password, and must not be
    mistaken for one.
    """
    if not hashed:
        raise ValueError("Password hash is empty.")
    return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
