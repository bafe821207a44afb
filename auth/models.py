"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, service, and routes do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from auth.cookies import SessionCookie


@dataclass(frozen=True)
class User:
    """A registered account.

    username is unique and never changes after registration. password_hash is
    the opaque bcrypt string; it is excluded from repr() so a User can be
    logged without leaking the hash, and it is never serialized to clients.
    """

    username: str
    password_hash: str = field(repr=False)
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class VerifiedToken:
    """Outcome of TokenService.verify(). user_id is None whenever valid is False."""

    valid: bool
    user_id: int | None = None

    @classmethod
    def rejected(cls) -> VerifiedToken:
        return cls(valid=False)


@dataclass(frozen=True)
class Session:
    """Result of a successful login: who logged in, the token, and the cookie to set."""

    user: User
    token: str = field(repr=False)
    cookie: SessionCookie
