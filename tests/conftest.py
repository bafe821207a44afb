"""
tests/conftest.py -- Shared test fixtures for AuthGate.

This module provides:
  - InMemoryUserStore: dict-backed CredentialStore fake for AuthService tests
  - FakeClock: settable clock injected into TokenService for expiry tests
  - hasher / tokens / service: unit-level building blocks with a fixed secret
  - api: TestClient over the real FastAPI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the api fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread. Each api fixture gets its own uniquely named database.

JWT_SECRET must be set before any api/ import so get_settings() does not fall
back to the development secret (and warn) during collection.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

# Set before any api/ or core/ import -- see module docstring.
os.environ.setdefault("JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.cookies import CookiePolicy
from auth.errors import UsernameTakenError
from auth.models import User
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import SigningKey, TokenService

TEST_SECRET = "unit-test-secret-0123456789abcdef0123456789"

# A fixed instant with no sub-second part keeps expiry arithmetic exact.
T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class InMemoryUserStore:
    """CredentialStore backed by a dict. Mirrors UserStore's error contract."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self._next_id = 1

    def create_user(self, username: str, password_hash: str) -> User:
        if username in self.users:
            raise UsernameTakenError(username)
        user = User(id=self._next_id, username=username, password_hash=password_hash, created_at=T0.isoformat())
        self._next_id += 1
        self.users[username] = user
        return user

    def get_by_username(self, username: str) -> User | None:
        return self.users.get(username)


class FakeClock:
    """Callable clock for TokenService. advance() moves time forward."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> PasswordHasher:
    """bcrypt at the minimum cost (4) so the suite stays fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def signing_key() -> SigningKey:
    return SigningKey(secret=TEST_SECRET)


@pytest.fixture
def tokens(signing_key: SigningKey, clock: FakeClock) -> TokenService:
    return TokenService(signing_key, clock=clock)


@pytest.fixture
def cookie_policy() -> CookiePolicy:
    return CookiePolicy(name="token", max_age=72 * 3600)


@pytest.fixture
def memory_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def service(
    memory_store: InMemoryUserStore,
    hasher: PasswordHasher,
    tokens: TokenService,
    cookie_policy: CookiePolicy,
) -> AuthService:
    return AuthService(memory_store, hasher, tokens, cookie_policy)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, tokens: TokenService, cookie_policy: CookiePolicy, hasher: PasswordHasher):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-built test objects into app.state so TestClient routes see an
    isolated database, a fast hasher, and a controllable clock instead of the
    production configuration.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.tokens = tokens
        app.state.cookie_policy = cookie_policy
        app.state.auth = AuthService(user_store, hasher, tokens, cookie_policy)
        yield

    return test_lifespan


@pytest.fixture
def api(
    hasher: PasswordHasher,
    tokens: TokenService,
    cookie_policy: CookiePolicy,
    clock: FakeClock,
) -> Generator[SimpleNamespace, None, None]:
    """Yield a namespace with client, store, tokens, and clock for API tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, the real session gate, and a real SQL store.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    user_store = UserStore.connect(db_url, attempts=1)

    app.router.lifespan_context = _patch_lifespan(user_store, tokens, cookie_policy, hasher)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield SimpleNamespace(client=client, store=user_store, tokens=tokens, clock=clock)

    user_store.close()
