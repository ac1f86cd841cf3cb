"""
tests/test_cli.py -- Tests for the main.py command line.

seed-admin runs against a throwaway SQLite file; get_settings is patched so
the CLI never touches the default database.

Covers:
  - seed-admin creates the first admin, then becomes a no-op
  - missing password exits 1 without prompting when stdin is not a TTY
  - ADMIN_PASSWORD setting is used when --password is absent
  - no command prints help and exits 0
"""

from __future__ import annotations

import pytest

import main as cli
from auth.models import Role
from auth.store import AccountStore
from core.config import Settings
from core.database import create_db_engine


@pytest.fixture()
def settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        debug=True,
        database_url=f"sqlite:///{tmp_path / 'cli.db'}",
        blob_local_dir=str(tmp_path / "uploads"),
        bcrypt_rounds=4,
    )
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(cli.sys.stdin, "isatty", lambda: False, raising=False)
    return settings


def _admins(settings: Settings) -> list[str]:
    engine = create_db_engine(settings.database_url)
    try:
        return [a.email for a in AccountStore(engine).list_accounts(role=Role.admin)]
    finally:
        engine.dispose()


def test_seed_admin_creates_once(settings, capsys) -> None:
    assert cli.main(["seed-admin", "--email", "Chief@News.com", "--password", "Admin@123"]) == 0
    assert "Admin created: chief@news.com" in capsys.readouterr().out

    assert cli.main(["seed-admin", "--email", "other@news.com", "--password", "Admin@123"]) == 0
    assert "already exists" in capsys.readouterr().out
    assert _admins(settings) == ["chief@news.com"]


def test_seed_admin_requires_password(settings, capsys) -> None:
    assert cli.main(["seed-admin"]) == 1
    assert "No admin password" in capsys.readouterr().out
    assert _admins(settings) == []


def test_seed_admin_uses_configured_password(settings) -> None:
    settings.admin_password = "From-Env-123"
    assert cli.main(["seed-admin"]) == 0
    assert _admins(settings) == [settings.admin_email]


def test_no_command_prints_help(settings, capsys) -> None:
    assert cli.main([]) == 0
    assert "seed-admin" in capsys.readouterr().out
