"""
security/passwords.py
---------------------
Salted one-way password hashing (Argon2).
Plaintext passwords never reach the database or the logs.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_ph = PasswordHasher()


def hash_password(password: str) -> str:
    """Return a salted Argon2 hash of ``password``."""
    return _ph.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Check ``password`` against a stored hash. Never raises on a bad hash."""
    if not password_hash:
        return False
    try:
        return _ph.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError, VerificationError):
        return False
