"""
auth/accounts.py -- Account lifecycle rules: register, login, refresh, admin actions.

Every operation checks its own preconditions in a fixed order and raises an
auth.errors type on the first one that fails. The "at least one admin" rule is
enforced twice: a read-side check that produces a clear message, and the
guarded statement in AccountStore that makes the check-and-write atomic. When
the guard refuses a write the read-side check passed, which means a concurrent
request got there first; the same 400 is returned.

Login ordering: existence, then password, then the active flag. A disabled
account is only reported after the caller has proven they know its password,
and an unknown email always costs one bcrypt verification.

Cascade delete: the account row and its news rows are removed in one
transaction. Image blobs are deleted afterwards, one at a time; a failure is
logged and skipped so a flaky blob backend can never block the delete. An
orphaned blob is the accepted worst case.

Layer rule: no imports from api/ or news/. The content store and blob store are
injected; the content store is typed structurally.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from auth.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationError
from auth.models import Account, Identity, Role
from auth.passwords import DEFAULT_ROUNDS, hash_password, verify_password
from auth.store import AccountStore, normalize_email
from blobs.store import BlobStore, BlobStoreError

logger = logging.getLogger("newsdesk.accounts")


class ContentOwnerStore(Protocol):
    """What account deletion needs from the content store."""

    def list_by_author(self, author_id: str, conn: Optional[Connection] = None) -> list[Any]: ...

    def delete_by_author(self, author_id: str, conn: Optional[Connection] = None) -> int: ...


@dataclass(frozen=True)
class DeletionSummary:
    deleted_email: str
    deleted_news_count: int


@dataclass(frozen=True)
class AccountPage:
    """One page of accounts. page/limit are None when no paging was requested."""

    accounts: list[Account]
    total: int
    page: Optional[int] = None
    limit: Optional[int] = None

    @property
    def total_pages(self) -> Optional[int]:
        if not self.limit:
            return None
        return math.ceil(self.total / self.limit)


class AccountService:
    def __init__(
        self,
        accounts: AccountStore,
        content: ContentOwnerStore,
        blobs: BlobStore,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self.accounts = accounts
        self.content = content
        self.blobs = blobs
        self.bcrypt_rounds = bcrypt_rounds
        # Computed once per service so the first unknown-email login is not
        # measurably slower than later ones. Same cost factor as real hashes.
        self._dummy_hash = hash_password("newsdesk_timing_dummy", rounds=bcrypt_rounds)

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str) -> Account:
        if not (name and name.strip()) or not (email and email.strip()) or not password:
            raise ValidationError("All fields are required")
        if self.accounts.get_by_email(email) is not None:
            raise Conflict("User already exists")

        account = Account(
            name=name.strip(),
            email=normalize_email(email),
            hashed_password=hash_password(password, rounds=self.bcrypt_rounds),
        )
        try:
            account.id = self.accounts.create(account)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration of the same email.
            raise Conflict("User already exists") from exc
        logger.info("Registered account %s", account.id)
        return self._require(account.id)

    def authenticate(self, email: str, password: str) -> Account:
        """Return the account for valid credentials.

        Raises Unauthorized for an unknown email or wrong password (same
        message for both), Forbidden for a disabled account.
        """
        if not email or not password:
            raise ValidationError("Email and password required")
        account = self.accounts.get_by_email(email)
        if account is None:
            verify_password(password, self._dummy_hash)
            raise Unauthorized("Invalid credentials")
        if not verify_password(password, account.hashed_password):
            raise Unauthorized("Invalid credentials")
        if not account.is_active:
            logger.warning("Rejected login for disabled account %s", account.id)
            raise Forbidden("Account is disabled. Contact admin.")
        return account

    def resolve_refresh(self, identity: Identity) -> Account:
        """Re-read the subject of a verified refresh token.

        The new access token is minted from the returned account, so a role
        change takes effect at the next refresh.
        """
        account = self.accounts.get_by_id(identity.subject_id)
        if account is None:
            raise Unauthorized("Invalid or expired refresh token")
        if not account.is_active:
            logger.warning("Rejected refresh for disabled account %s", account.id)
            raise Forbidden("Account is disabled. Contact admin.")
        return account

    def get(self, account_id: str) -> Account:
        return self._require(account_id)

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------

    def list_accounts(
        self,
        role: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> AccountPage:
        role_filter = self._parse_role(role) if role else None
        total = self.accounts.count(role_filter)
        if page is None and limit is None:
            return AccountPage(accounts=self.accounts.list_accounts(role_filter), total=total)

        page = page if page and page > 0 else 1
        limit = limit if limit and limit > 0 else 10
        rows = self.accounts.list_accounts(role_filter, offset=(page - 1) * limit, limit=limit)
        return AccountPage(accounts=rows, total=total, page=page, limit=limit)

    def change_role(self, actor_id: str, target_id: str, role: str) -> Account:
        new_role = self._parse_role(role)
        if actor_id == target_id and new_role is not Role.admin:
            raise ValidationError("Admin cannot change their own role")
        target = self._require(target_id)

        if not self.accounts.update_role_guarded(target_id, new_role):
            self._require(target_id)
            raise ValidationError("Cannot demote the last admin")
        logger.info("Role of %s changed %s -> %s by %s", target_id, target.role.value, new_role.value, actor_id)
        return self._require(target_id)

    def disable(self, actor_id: str, target_id: str) -> Account:
        if actor_id == target_id:
            raise ValidationError("Admin cannot disable their own account")
        target = self._require(target_id)
        if not target.is_active:
            raise ValidationError("User is already disabled")

        if not self.accounts.disable_guarded(target_id):
            current = self._require(target_id)
            if not current.is_active:
                raise ValidationError("User is already disabled")
            raise ValidationError("Cannot disable the last active admin")
        logger.info("Account %s disabled by %s", target_id, actor_id)
        return self._require(target_id)

    def enable(self, target_id: str) -> Account:
        target = self._require(target_id)
        if target.is_active:
            raise ValidationError("User is already active")
        if not self.accounts.enable(target_id):
            self._require(target_id)
            raise ValidationError("User is already active")
        logger.info("Account %s enabled", target_id)
        return self._require(target_id)

    def delete(self, actor_id: str, target_id: str) -> DeletionSummary:
        if actor_id == target_id:
            raise ValidationError("Admin cannot delete their own account")
        target = self._require(target_id)
        if target.role is Role.admin and self.accounts.count_admins() <= 1:
            raise ValidationError("Cannot delete the last admin")

        with self.accounts.transaction() as conn:
            owned = self.content.list_by_author(target_id, conn=conn)
            deleted = self.accounts.delete_guarded(target_id, conn=conn)
            # News rows only go when the account row went.
            removed = self.content.delete_by_author(target_id, conn=conn) if deleted else 0

        if not deleted:
            self._require(target_id)
            raise ValidationError("Cannot delete the last admin")

        for item in owned:
            public_id = getattr(item, "image_public_id", None)
            if public_id:
                self._delete_blob(public_id, owner=getattr(item, "id", None))

        logger.info("Deleted account %s and %d news items (by %s)", target_id, removed, actor_id)
        return DeletionSummary(deleted_email=target.email, deleted_news_count=removed)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def seed_admin(self, name: str, email: str, password: str) -> Optional[Account]:
        """Create the first admin. Returns None (and does nothing) if any admin exists."""
        if self.accounts.has_admin():
            logger.info("Admin already exists; seeding skipped")
            return None
        if not password:
            raise ValidationError("Admin password is required")
        existing = self.accounts.get_by_email(email)
        if existing is not None:
            raise Conflict(f"Account {normalize_email(email)} already exists")

        account = Account(
            name=name,
            email=normalize_email(email),
            hashed_password=hash_password(password, rounds=self.bcrypt_rounds),
            role=Role.admin,
        )
        account_id = self.accounts.create(account)
        logger.info("Seeded admin account %s (%s)", account_id, account.email)
        return self._require(account_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, account_id: str) -> Account:
        account = self.accounts.get_by_id(account_id)
        if account is None:
            raise NotFound("User not found")
        return account

    @staticmethod
    def _parse_role(role: Any) -> Role:
        try:
            return Role(role)
        except ValueError as exc:
            raise ValidationError("Invalid role", code="invalid_role") from exc

    def _delete_blob(self, public_id: str, owner: Optional[str]) -> None:
        try:
            self.blobs.delete(public_id)
        except BlobStoreError as exc:
            logger.warning("Failed to delete image %s for news %s: %s", public_id, owner, exc)
