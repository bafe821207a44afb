"""Tests for main.py -- the create-user command.

Each test points DATABASE_URL at a fresh SQLite file under tmp_path and
answers the password prompts through a patched getpass. get_settings() is
cached, so the cli_env fixture clears it on the way in and on the way out.

Covers:
- success stores a user that can then be looked up and verified
- mismatched password confirmation exits 1 and stores nothing
- a taken username exits 1 with the generic failure message
- a registration validation failure reports the reason
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

import main as cli
from auth.passwords import PasswordHasher
from auth.store import UserStore
from core.config import get_settings


@pytest.fixture
def cli_env(tmp_path, monkeypatch) -> Iterator[str]:
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("DB_CONNECT_ATTEMPTS", "1")
    monkeypatch.setenv("BCRYPT_ROUNDS", "4")
    get_settings.cache_clear()
    yield db_url
    get_settings.cache_clear()


def _answer_prompts(monkeypatch, *answers: str) -> list[str]:
    prompts: list[str] = []
    replies = iter(answers)

    def fake_getpass(prompt: str = "Password: ") -> str:
        prompts.append(prompt)
        return next(replies)

    monkeypatch.setattr(cli.getpass, "getpass", fake_getpass)
    return prompts


def _lookup(db_url: str, username: str):
    store = UserStore.connect(db_url, attempts=1)
    try:
        return store.get_by_username(username)
    finally:
        store.close()


def test_create_user_stores_account(cli_env: str, monkeypatch, capsys) -> None:
    prompts = _answer_prompts(monkeypatch, "wonderland", "wonderland")

    assert cli.main(["create-user", "alice"]) == 0

    assert prompts == ["Password: ", "Repeat password: "]
    assert "Created user 'alice'" in capsys.readouterr().out
    user = _lookup(cli_env, "alice")
    assert user is not None
    assert PasswordHasher(rounds=4).verify("wonderland", user.password_hash)


def test_mismatched_confirmation_stores_nothing(cli_env: str, monkeypatch, capsys) -> None:
    _answer_prompts(monkeypatch, "wonderland", "wonder1and")

    assert cli.main(["create-user", "alice"]) == 1

    assert "Passwords do not match" in capsys.readouterr().out
    assert _lookup(cli_env, "alice") is None


def test_taken_username_fails_generically(cli_env: str, monkeypatch, capsys) -> None:
    _answer_prompts(monkeypatch, "first", "first", "second", "second")
    assert cli.main(["create-user", "alice"]) == 0
    capsys.readouterr()

    assert cli.main(["create-user", "alice"]) == 1

    out = capsys.readouterr().out
    assert "[!] Could not create user." in out
    assert "taken" not in out.lower()
    assert "exists" not in out.lower()
    assert PasswordHasher(rounds=4).verify("first", _lookup(cli_env, "alice").password_hash)


def test_invalid_password_reports_reason(cli_env: str, monkeypatch, capsys) -> None:
    _answer_prompts(monkeypatch, "p" * 73, "p" * 73)

    assert cli.main(["create-user", "alice"]) == 1

    out = capsys.readouterr().out
    assert "[!]" in out
    assert "Created user" not in out
    assert _lookup(cli_env, "alice") is None
