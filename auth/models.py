"""
auth/models.py -- Domain dataclasses and enums for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these types only describe shape.

Layer rule: no imports from api/, news/, or blobs/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    user = "user"
    editor = "editor"
    admin = "admin"


class TokenKind(str, Enum):
    access = "access"
    refresh = "refresh"


@dataclass
class Account:
    """A registered identity.

    email is stored lowercased; the store normalizes on every read and write
    so uniqueness is case-insensitive.

    hashed_password never leaves the auth layer -- API response models are
    built field by field and do not include it.
    """

    name: str
    email: str
    hashed_password: str
    role: Role = Role.user
    id: str | None = None
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """Verified claims carried by a session token.

    Built only by TokenIssuer.verify(). The Authentication Gate binds it to the
    request; authorization decisions trust `role` as embedded in the token.
    """

    subject_id: str
    role: Role
    kind: TokenKind
    expires_at: datetime
