"""Password hashing with Argon2id."""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

MIN_PASSWORD_LENGTH = 6

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Return an Argon2id hash of ``password``."""
    return _hasher.hash(password)


def verify_password(password: str, hash_value: str | None) -> bool:
    """Return True when ``password`` matches ``hash_value``.

    A missing or malformed hash never matches.
    """
    if not hash_value:
        return False
    try:
        return _hasher.verify(hash_value, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hash_value: str) -> bool:
    """Return True when the stored hash uses outdated parameters."""
    return _hasher.check_needs_rehash(hash_value)
