"""
tests/conftest.py -- Shared test fixtures for Newsdesk tests.

This module provides:
  - RecordingBlobStore: in-memory BlobStore that records calls and can be told
    to fail on delete, for cascade and best-effort cleanup tests
  - _make_engine(): isolated named shared-memory SQLite engine per test
  - _patch_lifespan(): wires test services into app.state, bypassing real startup
  - client: TestClient over the real app with fresh state per test
  - login_as: helper that creates an account with a role and returns auth headers

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Settings are read when api.main is imported, so the environment below must be
set before any project import.
"""

from __future__ import annotations

import os
import tempfile
import uuid
from collections.abc import Callable, Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any project import. DEBUG lets get_settings()
# auto-generate signing secrets instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("BLOB_LOCAL_DIR", tempfile.mkdtemp(prefix="newsdesk-test-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app, init_state
from auth.models import Account, Role
from auth.passwords import hash_password
from auth.store import AccountStore
from blobs.store import BlobStore, BlobStoreError, StoredBlob
from core.config import get_settings
from core.database import create_db_engine

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class RecordingBlobStore(BlobStore):
    """BlobStore double: keeps blobs in a dict and records every delete.

    fail_on_delete holds public_ids whose deletion raises BlobStoreError.
    """

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_on_delete: set[str] = set()

    def upload(self, data: bytes, filename: str, content_type: str) -> StoredBlob:
        public_id = f"news/{uuid.uuid4().hex}"
        self.blobs[public_id] = data
        return StoredBlob(url=f"https://cdn.test/{public_id}", public_id=public_id)

    def delete(self, public_id: str) -> None:
        self.deleted.append(public_id)
        if public_id in self.fail_on_delete:
            raise BlobStoreError(f"simulated failure deleting {public_id}")
        self.blobs.pop(public_id, None)


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_engine(prefix: str = "newsdesk") -> Engine:
    """Create an isolated named shared-memory SQLite engine.

    A fresh uuid per call keeps tests from seeing each other's rows.
    """
    return create_db_engine(f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(engine: Engine, blobs: BlobStore):
    """Return an async context manager that replaces the real lifespan.

    Wires services built on the test engine and fake blob store into
    app.state, exactly as the production lifespan does.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(app.state, settings=get_settings(), engine=engine, blobs=blobs)
        yield

    return test_lifespan


def create_account(
    engine: Engine,
    email: str,
    password: str = "password123",
    role: Role = Role.user,
    name: str = "Test User",
    is_active: bool = True,
) -> str:
    store = AccountStore(engine)
    return store.create(
        Account(
            name=name,
            email=email,
            hashed_password=hash_password(password, rounds=4),
            role=role,
            is_active=is_active,
        )
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    eng = _make_engine()
    yield eng
    eng.dispose()


@pytest.fixture()
def blobs() -> RecordingBlobStore:
    return RecordingBlobStore()


@pytest.fixture()
def client(engine: Engine, blobs: RecordingBlobStore) -> Generator[TestClient, None, None]:
    """TestClient over the real app with isolated state.

    Function-scoped so cookies set by one test never leak into the next.
    """
    app.router.lifespan_context = _patch_lifespan(engine, blobs)
    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client


@pytest.fixture()
def login_as(client: TestClient, engine: Engine) -> Callable[..., tuple[str, dict[str, str]]]:
    """Create an account with `role` and return (account_id, bearer headers).

    Uses the bearer header, not cookies, so several identities can be used
    side by side from one client.
    """

    def _login(role: Role = Role.user, email: str | None = None) -> tuple[str, dict[str, str]]:
        email = email or f"{role.value}-{uuid.uuid4().hex[:8]}@news.test"
        account_id = create_account(engine, email, role=role)
        token = client.app.state.tokens.issue_access(account_id, role)
        return account_id, {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture()
def make_account(engine: Engine) -> Callable[..., str]:
    """Insert an account directly through the store and return its id."""

    def _make(email: str, role: Role = Role.user, **kw) -> str:
        return create_account(engine, email, role=role, **kw)

    return _make
