"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper (same as news/store.py).
AccountStore is the repository; _row_to_account is the mapper.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Invariant guards:
  "At least one admin exists" is enforced inside the mutating statement
  itself. Demote, disable and delete each run as a single UPDATE/DELETE
  whose WHERE clause re-counts admins, so the check and the write are atomic
  in the database. Two concurrent requests deleting the only two admins
  cannot both pass: the second statement sees a count of 1 and matches no
  row. A False return from a guarded method means "guard refused" or "row
  gone"; the service re-reads to tell which.

Layer rule: no imports from api/, news/, or blobs/.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import Boolean, Column, String, Table, Text, func, select, text
from sqlalchemy.engine import Connection, Engine

from auth.models import Account, Role
from core.database import connection_scope, metadata, now_iso

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_accounts = Table(
    "accounts",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True, index=True),  # stored lowercased
    Column("hashed_password", Text, nullable=False),
    Column("role", String(16), nullable=False, server_default=Role.user.value, index=True),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

# ---------------------------------------------------------------------------
# Guarded mutations
# ---------------------------------------------------------------------------

_GUARDED_ROLE_UPDATE = text(
    """
    UPDATE accounts SET role = :role, updated_at = :now
    WHERE id = :id
      AND (role != 'admin' OR :role = 'admin'
           OR (SELECT COUNT(*) FROM accounts WHERE role = 'admin') > 1)
    """
)

_GUARDED_DISABLE = text(
    """
    UPDATE accounts SET is_active = :inactive, updated_at = :now
    WHERE id = :id AND is_active = :active
      AND (role != 'admin'
           OR (SELECT COUNT(*) FROM accounts WHERE role = 'admin' AND is_active = :active) > 1)
    """
)

_GUARDED_DELETE = text(
    """
    DELETE FROM accounts
    WHERE id = :id
      AND (role != 'admin'
           OR (SELECT COUNT(*) FROM accounts WHERE role = 'admin') > 1)
    """
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore(create_db_engine("sqlite:///newsdesk.db"))
        account_id = store.create(Account(name="Alice", email="a@x.com", hashed_password=...))
        account = store.get_by_email("A@X.com")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Open a transaction other stores can join by passing `conn=`."""
        with self.engine.begin() as conn:
            yield conn

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create(self, account: Account) -> str:
        """Insert a new account and return its assigned id.

        Raises sqlalchemy.exc.IntegrityError if the email is already taken.
        Callers translate that into a 409 -- it is the authoritative
        duplicate check, the service's pre-read is only a fast path.
        """
        account_id = uuid.uuid4().hex
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                _accounts.insert().values(
                    id=account_id,
                    name=account.name,
                    email=normalize_email(account.email),
                    hashed_password=account.hashed_password,
                    role=Role(account.role).value,
                    is_active=account.is_active,
                    created_at=now,
                    updated_at=now,
                )
            )
        return account_id

    def get_by_id(self, account_id: str) -> Optional[Account]:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> Optional[Account]:
        """Look up an account by email, case-insensitively. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == normalize_email(email))).fetchone()
        return _row_to_account(row) if row is not None else None

    def list_accounts(
        self,
        role: Optional[Role] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[Account]:
        """Return accounts newest first, optionally filtered by role and paged."""
        stmt = _accounts.select().order_by(_accounts.c.created_at.desc(), _accounts.c.id)
        if role is not None:
            stmt = stmt.where(_accounts.c.role == Role(role).value)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_account(r) for r in rows]

    def count(self, role: Optional[Role] = None) -> int:
        stmt = select(func.count()).select_from(_accounts)
        if role is not None:
            stmt = stmt.where(_accounts.c.role == Role(role).value)
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0

    def count_admins(self) -> int:
        return self.count(Role.admin)

    def has_admin(self) -> bool:
        """Return True if at least one admin exists. Used by seeding and startup."""
        return self.count_admins() > 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_role_guarded(self, account_id: str, role: Role) -> bool:
        """Set the role unless that would demote the last admin."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _GUARDED_ROLE_UPDATE,
                {"id": account_id, "role": Role(role).value, "now": now_iso()},
            )
        return result.rowcount > 0

    def disable_guarded(self, account_id: str) -> bool:
        """Deactivate an active account unless it is the last active admin."""
        with self.engine.begin() as conn:
            result = conn.execute(
                _GUARDED_DISABLE,
                {"id": account_id, "now": now_iso(), "active": True, "inactive": False},
            )
        return result.rowcount > 0

    def enable(self, account_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                _accounts.update()
                .where((_accounts.c.id == account_id) & _accounts.c.is_active.is_(False))
                .values(is_active=True, updated_at=now_iso())
            )
        return result.rowcount > 0

    def delete_guarded(self, account_id: str, conn: Optional[Connection] = None) -> bool:
        """Delete the account unless it is the last admin.

        Pass `conn` to run inside a caller-owned transaction (cascade delete).
        """
        with connection_scope(self.engine, conn) as c:
            result = c.execute(_GUARDED_DELETE, {"id": account_id})
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        is_active=bool(row.is_active),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
