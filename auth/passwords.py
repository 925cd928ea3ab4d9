"""
auth/passwords.py -- One-way hashing for stored credentials.

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects
with an explicit error.

bcrypt's limit is 72 BYTES of UTF-8, not 72 characters -- 40 accented
characters are already over it, and current bcrypt raises ValueError instead
of truncating. Every entry point that hashes a new password (API request
models, admin CLI) checks password_fits() first.
"""

from __future__ import annotations

import bcrypt

PASSWORD_MAX_BYTES = 72


def password_fits(plain: str) -> bool:
    """Return True if the UTF-8 encoding of plain is within bcrypt's limit."""
    return len(plain.encode("utf-8")) <= PASSWORD_MAX_BYTES


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises ValueError for passwords over PASSWORD_MAX_BYTES.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash or an over-long candidate is a mismatch, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
