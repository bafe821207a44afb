"""
auth/passwords.py -- bcrypt password hashing and verification.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x+
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

Contract:
  hash()   -- fresh salt per call, embedded in the returned string, so no
              separate salt column is needed. Raises PasswordHashError if
              the password exceeds 72 bytes or bcrypt cannot produce a
              hash; callers must abort rather than store anything.
  verify() -- bcrypt.checkpw compares in constant time. Any failure (wrong
              password, corrupt hash, oversize input) is simply False.

Hashing is CPU-bound and deliberately slow. Call it from sync route handlers
(FastAPI threadpool) and never while holding a shared lock.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import PasswordHashError

logger = logging.getLogger("authgate.auth")

# bcrypt only looks at the first 72 bytes. Older bcrypt releases truncate
# silently, newer ones raise, so the limit is enforced here for both.
MAX_PASSWORD_BYTES = 72


def _too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


class PasswordHasher:
    """bcrypt hasher with a fixed cost factor.

    dummy_hash is the timing equalization hash: it is verified against when
    the username does not exist, so an unknown username costs the same bcrypt
    work as a wrong password. It is built at construction, which also means a
    bad cost factor fails at startup rather than on the first registration.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds
        self.dummy_hash = self.hash("authgate_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a salted bcrypt hash of the plaintext password."""
        if _too_long(plain):
            logger.error("bcrypt hashing refused: password exceeds %d bytes", MAX_PASSWORD_BYTES)
            raise PasswordHashError("password hashing failed")
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")
        except ValueError as exc:
            logger.error("bcrypt hashing failed (rounds=%d): %s", self.rounds, exc)
            raise PasswordHashError("password hashing failed") from exc

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash."""
        if _too_long(plain):
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False
