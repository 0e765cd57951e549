#!/usr/bin/env python3
"""
VSS Platform -- operator CLI.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 3000
  python main.py create-user alice --email alice@example.com
  echo 's3cret' | python main.py create-user alice --email alice@example.com --password-stdin

Environment variables (see core/config.py for the full list):
  SECRET_KEY      Token signing secret, at least 32 characters. Required unless DEBUG=true.
  DEBUG           true to auto-generate a throwaway SECRET_KEY for local development.
  DATABASE_URL    SQLAlchemy URL of the user store (default: SQLite beside auth/).
  API_RATE_LIMIT  Admission quota for /api/* per client address (default: "1000/15 minutes").
  PORT            Default listen port for `serve` (default: 3000).
"""

import argparse
import getpass
import os
import sys
from typing import Optional

from auth.errors import StoreFailure, UsernameTaken
from auth.passwords import MAX_PASSWORD_BYTES, hash_password
from auth.store import UserStore
from core.config import APP_VERSION, get_settings


def _read_password(from_stdin: bool) -> Optional[str]:
    """Read a new password from stdin or an interactive prompt (entered twice).

    Returns None when the input is empty, mismatched, or too long for bcrypt.
    """
    if from_stdin:
        password = sys.stdin.readline().rstrip("\n")
    else:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Repeat password: ") != password:
            print("  [!] Passwords do not match.")
            return None
    if not password:
        print("  [!] Password must not be empty.")
        return None
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        print(f"  [!] Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return None
    return password


def create_user(store: UserStore, username: str, email: Optional[str], password: str) -> Optional[int]:
    """Hash the password and insert the user. Returns the new id, or None on failure."""
    try:
        user_id = store.insert_user(username, email, hash_password(password))
    except UsernameTaken:
        print(f"  [!] User '{username}' already exists.")
        return None
    except StoreFailure:
        print("  [!] Could not write to the user store. Check DATABASE_URL.")
        return None
    print(f"  Created user '{username}' (id={user_id}).")
    return user_id


def serve(host: str, port: int, reload: bool) -> None:
    import uvicorn

    settings = get_settings()
    print(f"\nVery Secretive Software INC API {APP_VERSION}")
    print("─" * 40)
    print(f"Environment: {settings.environment}")
    print(f"Database: {settings.database_url.split('@')[-1]}")
    print(f"Listening on http://{host}:{port}\n")
    uvicorn.run("api.main:app", host=host, port=port, reload=reload, log_level=settings.log_level.lower())


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="vss-platform",
        description="Run the VSS platform API or manage its users.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 3000
  python main.py create-user admin --email admin@verysecretivesoftware.com
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve_parser = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", "3000")),
        help="Listen port (default: $PORT or 3000)",
    )
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")

    user_parser = sub.add_parser("create-user", help="Create a user account (bootstraps the first login)")
    user_parser.add_argument("username", help="Login name for the new account")
    user_parser.add_argument("--email", default=None, help="Contact email stored with the account")
    user_parser.add_argument(
        "--password-stdin",
        action="store_true",
        help="Read the password from the first line of stdin instead of prompting",
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        serve(args.host, args.port, args.reload)
        return 0

    if args.command == "create-user":
        password = _read_password(args.password_stdin)
        if password is None:
            return 1
        store = UserStore(get_settings().database_url)
        try:
            user_id = create_user(store, args.username, args.email, password)
        finally:
            store.close()
        return 0 if user_id is not None else 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
