"""Password hashing utilities.

bcrypt handles salting itself and produces hashes starting with "$2b$".
Work factor 12 (~100ms per hash on modern hardware). Passwords are
truncated to 72 bytes, bcrypt's input limit.
"""

from typing import Optional

import bcrypt

BCRYPT_ROUNDS = 12


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with a fresh random salt."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Garbage hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8")[:72], password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
