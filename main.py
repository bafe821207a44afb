#!/usr/bin/env python3
"""
AuthGate -- account registration, password login, and cookie sessions.

Usage:
  python main.py serve
  python main.py serve --host 127.0.0.1 --port 9000 --reload
  python main.py create-user alice

Environment variables (see core/config.py for the full list):
  JWT_SECRET     Token signing secret (>= 32 chars). Unset = insecure dev fallback.
  DATABASE_URL   SQLAlchemy URL, e.g. postgresql+psycopg://user:pw@db:5432/postgres
"""

import argparse
import getpass
import sys

from auth.cookies import CookiePolicy
from auth.errors import AuthGateError, ValidationError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import SigningKey, TokenService
from core.config import get_settings


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def _create_user(args: argparse.Namespace) -> int:
    """Register an account from the terminal using the same rules as POST /api/register."""
    settings = get_settings()
    password = getpass.getpass("Password: ")
    if password != getpass.getpass("Repeat password: "):
        print("  [!] Passwords do not match.")
        return 1

    try:
        store = UserStore.connect(
            settings.database_url,
            attempts=settings.db_connect_attempts,
            backoff_seconds=settings.db_connect_backoff_seconds,
        )
    except AuthGateError as e:
        print(f"  [!] {e}")
        return 1

    try:
        service = AuthService(
            store,
            PasswordHasher(rounds=settings.bcrypt_rounds),
            TokenService(SigningKey.from_settings(settings)),
            CookiePolicy(name=settings.session_cookie_name, max_age=settings.token_ttl_seconds),
        )
        user = service.register(args.username, password)
    except ValidationError as e:
        print(f"  [!] {e}")
        return 1
    except AuthGateError:
        print("  [!] Could not create user.")
        return 1
    finally:
        store.close()

    print(f"  Created user '{user.username}' (id={user.id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authgate",
        description="AuthGate -- credential and session service.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: PORT or 8080).")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development).")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Register an account interactively.")
    create.add_argument("username")
    create.set_defaults(func=_create_user)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
