"""
API request and response models for the Newsdesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
news/models.py, which own the internal domain representation. Route handlers
map between the two with the from_* factory methods below.

No response model has a password or hash field. Accounts are mapped field by
field, so a new column on Account never leaks by accident.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.accounts import AccountPage, DeletionSummary
from auth.models import Account, Role
from news.models import NewsItem

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# bcrypt only reads 72 bytes; the cap keeps hashing cost bounded.
MAX_PASSWORD_LENGTH = 128
MAX_PAGE_LIMIT = 100


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    message: str
    code: str
    detail: Optional[str] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = {}


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Body for POST /api/v1/auth/register.

    name and email are trimmed; password is kept byte for byte so that login
    with exactly what was typed at registration always matches.
    """

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)

    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_LENGTH)


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class AccountSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    user: AccountSummary


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: Role

    @classmethod
    def from_account(cls, account: Account) -> MeResponse:
        return cls(id=account.id, name=account.name, email=account.email, role=account.role)


# ---------------------------------------------------------------------------
# Admin -- requests
# ---------------------------------------------------------------------------


class RoleUpdate(BaseModel):
    """Body for PATCH /api/v1/admin/users/{id}/role.

    role stays a plain string so an unknown value reaches the service and is
    rejected with "Invalid role" rather than a generic validation error.
    """

    role: str = Field(max_length=32)


# ---------------------------------------------------------------------------
# Admin -- responses
# ---------------------------------------------------------------------------


class AccountOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: str

    @classmethod
    def from_account(cls, account: Account) -> AccountOut:
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            role=account.role,
            is_active=account.is_active,
            created_at=account.created_at or "",
        )


class AccountPagination(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int
    page: int
    limit: int
    total_pages: int


class AccountListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Users fetched successfully"
    pagination: Optional[AccountPagination] = None
    data: list[AccountOut]

    @classmethod
    def from_page(cls, page: AccountPage) -> AccountListResponse:
        pagination = None
        if page.page is not None and page.limit is not None:
            pagination = AccountPagination(
                total=page.total,
                page=page.page,
                limit=page.limit,
                total_pages=page.total_pages or 0,
            )
        return cls(pagination=pagination, data=[AccountOut.from_account(a) for a in page.accounts])


class RoleData(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: Role


class RoleChangeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    data: RoleData


class ActiveData(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    is_active: bool


class ActiveStateResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    data: ActiveData


class DeletionSummaryOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    deleted_user: str
    deleted_news_count: int


class DeleteAccountResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    summary: DeletionSummaryOut

    @classmethod
    def from_summary(cls, summary: DeletionSummary) -> DeleteAccountResponse:
        return cls(
            message="User and related news deleted successfully",
            summary=DeletionSummaryOut(
                deleted_user=summary.deleted_email,
                deleted_news_count=summary.deleted_news_count,
            ),
        )


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------


class NewsFilterRequest(BaseModel):
    """Body for POST /api/v1/news/filter. Every field is optional."""

    id: Optional[str] = None
    slug: Optional[str] = None
    category: Optional[str] = None
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=MAX_PAGE_LIMIT)


class ImageOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    public_id: str


class NewsOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    slug: str
    content: str
    category: str
    author_id: str
    image: Optional[ImageOut] = None
    is_published: bool
    published_at: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_item(cls, item: NewsItem) -> NewsOut:
        image = None
        if item.image_url and item.image_public_id:
            image = ImageOut(url=item.image_url, public_id=item.image_public_id)
        return cls(
            id=item.id,
            title=item.title,
            slug=item.slug,
            content=item.content,
            category=item.category,
            author_id=item.author_id,
            image=image,
            is_published=item.is_published,
            published_at=item.published_at,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class NewsPagination(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int
    limit: int
    total_pages: int
    total_results: int


class NewsListResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: list[NewsOut]
    pagination: Optional[NewsPagination] = None


class NewsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    data: NewsOut
