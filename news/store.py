"""
news/store.py -- SQLAlchemy Core persistence layer for news articles.

Pattern: Repository + Data Mapper. NewsStore is the repository, _row_to_item
is the mapper. Route handlers never touch SQL directly.

Shares the Engine (and the `metadata` registry) with auth/store.py so that
deleting an account and every article it authored can happen in one
transaction: list_by_author() and delete_by_author() accept the caller's
connection.

Security: all queries use bound parameters. No f-strings in SQL.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, Column, Index, String, Table, Text, func, select
from sqlalchemy.engine import Connection, Engine

from core.database import connection_scope, metadata, now_iso
from news.models import NewsItem

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_news = Table(
    "news",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("title", String(300), nullable=False),
    Column("slug", String(160), nullable=False, unique=True, index=True),
    Column("content", Text, nullable=False),
    Column("category", String(30), nullable=False, index=True),
    Column("author_id", String(32), nullable=False, index=True),
    Column("image_url", Text),
    Column("image_public_id", String(255)),
    Column("is_published", Boolean, nullable=False, server_default="0", index=True),
    Column("published_at", String(32)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    # Public listing filters by category + published and sorts newest first.
    Index("ix_news_public", "category", "is_published", "published_at"),
)

# Fields update() accepts. Anything else is a programming error.
_MUTABLE_FIELDS = {
    "title",
    "content",
    "category",
    "image_url",
    "image_public_id",
    "is_published",
    "published_at",
}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class NewsStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create(self, item: NewsItem) -> str:
        """Insert a new article and return its id.

        Raises sqlalchemy.exc.IntegrityError if the slug already exists.
        """
        item_id = uuid.uuid4().hex
        now = now_iso()
        with self.engine.begin() as conn:
            conn.execute(
                _news.insert().values(
                    id=item_id,
                    title=item.title,
                    slug=item.slug,
                    content=item.content,
                    category=item.category,
                    author_id=item.author_id,
                    image_url=item.image_url,
                    image_public_id=item.image_public_id,
                    is_published=item.is_published,
                    published_at=item.published_at,
                    created_at=now,
                    updated_at=now,
                )
            )
        return item_id

    def get(self, item_id: str) -> Optional[NewsItem]:
        with self.engine.connect() as conn:
            row = conn.execute(_news.select().where(_news.c.id == item_id)).fetchone()
        return _row_to_item(row) if row is not None else None

    def get_by_slug(self, slug: str) -> Optional[NewsItem]:
        with self.engine.connect() as conn:
            row = conn.execute(_news.select().where(_news.c.slug == slug)).fetchone()
        return _row_to_item(row) if row is not None else None

    def query(
        self,
        *,
        published_only: bool = True,
        item_id: Optional[str] = None,
        slug: Optional[str] = None,
        category: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> tuple[list[NewsItem], int]:
        """Return (page of matching items, total matching count).

        Items are ordered by published_at descending, latest first.
        """
        conditions = []
        if published_only:
            conditions.append(_news.c.is_published.is_(True))
        if item_id:
            conditions.append(_news.c.id == item_id)
        if slug:
            conditions.append(_news.c.slug == slug)
        if category:
            conditions.append(_news.c.category == category)

        stmt = _news.select().where(*conditions).order_by(_news.c.published_at.desc(), _news.c.created_at.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        count_stmt = select(func.count()).select_from(_news).where(*conditions)

        with self.engine.connect() as conn:
            total = conn.execute(count_stmt).scalar() or 0
            rows = conn.execute(stmt).fetchall()
        return [_row_to_item(r) for r in rows], total

    def update(self, item_id: str, **fields) -> bool:
        """Update mutable fields on an article. Returns False if it does not exist."""
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown news fields: {unknown!r}")
        fields["updated_at"] = now_iso()
        with self.engine.begin() as conn:
            result = conn.execute(_news.update().where(_news.c.id == item_id).values(**fields))
        return result.rowcount > 0

    def delete(self, item_id: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(_news.delete().where(_news.c.id == item_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Ownership (used by account cascade delete)
    # ------------------------------------------------------------------

    def list_by_author(self, author_id: str, conn: Optional[Connection] = None) -> list[NewsItem]:
        with connection_scope(self.engine, conn) as c:
            rows = c.execute(_news.select().where(_news.c.author_id == author_id)).fetchall()
        return [_row_to_item(r) for r in rows]

    def delete_by_author(self, author_id: str, conn: Optional[Connection] = None) -> int:
        """Delete every article by `author_id` and return how many were removed."""
        with connection_scope(self.engine, conn) as c:
            result = c.execute(_news.delete().where(_news.c.author_id == author_id))
        return result.rowcount


# ---------------------------------------------------------------------------
# Row mapper
# ---------------------------------------------------------------------------


def _row_to_item(row) -> NewsItem:
    return NewsItem(
        id=row.id,
        title=row.title,
        slug=row.slug,
        content=row.content,
        category=row.category,
        author_id=row.author_id,
        image_url=row.image_url,
        image_public_id=row.image_public_id,
        is_published=bool(row.is_published),
        published_at=row.published_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
