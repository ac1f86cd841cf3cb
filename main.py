#!/usr/bin/env python3
"""
Newsdesk -- news publishing API with session auth and role-based access.

Usage:
  python main.py seed-admin
  python main.py seed-admin --email chief@news.com --name "Chief Editor"
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload

Environment variables (see core/config.py for the full list):
  ACCESS_TOKEN_SECRET / REFRESH_TOKEN_SECRET  Required unless DEBUG=true.
  DATABASE_URL    SQLAlchemy URL. Defaults to ./newsdesk.db.
  ADMIN_PASSWORD  Password for seed-admin when --password is not given.
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.accounts import AccountService
from auth.errors import AppError
from auth.store import AccountStore
from blobs.store import create_blob_store
from core.config import get_settings
from core.database import create_db_engine
from news.store import NewsStore


def seed_admin(name: str, email: str, password: str) -> int:
    """Create the first admin account. Returns a process exit code."""
    settings = get_settings()
    engine = create_db_engine(settings.database_url)
    try:
        service = AccountService(
            AccountStore(engine),
            NewsStore(engine),
            create_blob_store(settings),
            bcrypt_rounds=settings.bcrypt_rounds,
        )
        account = service.seed_admin(name, email, password)
    except AppError as exc:
        print(f"  [!] Seeding failed: {exc.message}")
        return 1
    finally:
        engine.dispose()

    if account is None:
        print("  Admin already exists. Seeder aborted.")
        return 0
    print(f"  Admin created: {account.email} (role={account.role.value})")
    return 0


def serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=host, port=port, reload=reload)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="newsdesk",
        description="News publishing API with session auth and role-based access.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    seed = sub.add_parser("seed-admin", help="Create the first admin account if none exists")
    seed.add_argument("--name", default=settings.admin_name, help=f"Display name (default: {settings.admin_name})")
    seed.add_argument("--email", default=settings.admin_email, help=f"Login email (default: {settings.admin_email})")
    seed.add_argument(
        "--password",
        default=None,
        help="Admin password. Falls back to ADMIN_PASSWORD, then an interactive prompt.",
    )

    run = sub.add_parser("serve", help="Run the API with uvicorn")
    run.add_argument("--host", default="127.0.0.1")
    run.add_argument("--port", type=int, default=8000)
    run.add_argument("--reload", action="store_true", help="Reload on code changes (development)")

    args = parser.parse_args(argv)

    if args.command == "seed-admin":
        password = args.password or settings.admin_password
        if not password and sys.stdin.isatty():
            password = getpass.getpass("Admin password: ")
        if not password:
            print("  [!] No admin password given. Use --password or set ADMIN_PASSWORD.")
            return 1
        return seed_admin(args.name, args.email, password)

    if args.command == "serve":
        return serve(args.host, args.port, args.reload)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
