"""
auth/store.py -- SQLAlchemy Core persistence layer for user records.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Service and route
code never touches SQL directly, and only sees the CredentialStore protocol.

Security:
  All queries use bound parameters. No f-strings in SQL.
  UNIQUE(username) is enforced by the database; create_user() translates the
  IntegrityError into UsernameTakenError.

Startup:
  UserStore.connect() opens the engine and proves the database answers a
  SELECT 1, retrying a bounded number of times with a fixed wait (tenacity).
  When the attempts run out it raises StoreUnavailableError so the process
  never serves traffic against an unreachable store. Nothing is retried at
  request time.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import SingletonThreadPool
from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed

from auth.errors import StoreUnavailableError, UsernameTakenError
from auth.models import User

logger = logging.getLogger("authgate.store")

# ---------------------------------------------------------------------------
# Capability interface
# ---------------------------------------------------------------------------


class CredentialStore(Protocol):
    """What AuthService needs from persistence. Tests satisfy it with a dict."""

    def create_user(self, username: str, password_hash: str) -> User: ...

    def get_by_username(self, username: str) -> User | None: ...


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine setup
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _is_sqlite_memory(db_url: str) -> bool:
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return False
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


def _open_engine(db_url: str) -> Engine:
    """Create an engine, prove the database answers, and ensure the schema."""
    engine_kwargs: dict = {"pool_pre_ping": True}
    if db_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    # An in-memory database lives only as long as its connection, so each
    # thread keeps one open connection rather than borrowing from a queue.
    if _is_sqlite_memory(db_url):
        engine_kwargs["poolclass"] = SingletonThreadPool
    engine = create_engine(db_url, **engine_kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        _metadata.create_all(engine)
    except SQLAlchemyError:
        engine.dispose()
        raise
    return engine


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore.connect("sqlite:///authgate.db")
        store.create_user("alice", hasher.hash("secret"))
        user = store.get_by_username("alice")
        store.close()
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def connect(
        cls,
        db_url: str,
        attempts: int = 5,
        backoff_seconds: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> UserStore:
        """Open the store, retrying startup connection failures.

        attempts counts the first try. sleep is injectable so tests do not
        actually wait out the backoff.
        """
        retrying = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(backoff_seconds),
            retry=retry_if_exception_type(SQLAlchemyError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=sleep,
            reraise=True,
        )
        try:
            engine = retrying(_open_engine, db_url)
        except SQLAlchemyError as exc:
            logger.error("Credential store unreachable after %d attempts: %s", attempts, exc)
            raise StoreUnavailableError("failed to connect to the credential store") from exc
        logger.info("Credential store connected (%s)", engine.dialect.name)
        return cls(engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, username: str, password_hash: str) -> User:
        """Insert a new user and return the stored record.

        Raises UsernameTakenError if the username already exists and
        StoreUnavailableError on any other database failure. The existing
        record is untouched in both cases (the insert is rolled back).
        """
        created_at = _now_iso()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        password_hash=password_hash,
                        created_at=created_at,
                    )
                )
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise UsernameTakenError(username) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"create_user failed: {exc.__class__.__name__}") from exc
        return User(id=user_id, username=username, password_hash=password_hash, created_at=created_at)

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        return self._fetch_one(_users.c.username == username)

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        return self._fetch_one(_users.c.id == user_id)

    def _fetch_one(self, clause) -> User | None:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_users.select().where(clause)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"user lookup failed: {exc.__class__.__name__}") from exc
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Health and stats
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers SELECT 1."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Credential store ping failed", exc_info=True)
            return False
        return True

    def stats(self) -> dict:
        """Connection pool and server information for GET /api/system-stats.

        Pool counters only exist on QueuePool; SQLite's default pools report
        just the status string.
        """
        pool = self.engine.pool
        pool_stats: dict = {"status": pool.status()}
        for name in ("size", "checkedin", "checkedout", "overflow"):
            method = getattr(pool, name, None)
            if callable(method):
                pool_stats[name] = method()
        try:
            with self.engine.connect() as conn:
                version_info = conn.dialect.server_version_info or ()
        except SQLAlchemyError as exc:
            logger.warning("Credential store stats unavailable: %s", exc)
            return {
                "status": "disconnected",
                "dialect": self.engine.dialect.name,
                "error": exc.__class__.__name__,
                "pool": pool_stats,
            }
        return {
            "status": "connected",
            "dialect": self.engine.dialect.name,
            "version": ".".join(str(part) for part in version_info),
            "pool": pool_stats,
        }

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )
