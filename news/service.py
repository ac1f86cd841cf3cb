"""
news/service.py -- News article rules: listing, create, update, delete, images.

Images go to the injected BlobStore; only the returned (url, public_id) pair
is stored on the article. Removing an image that is being replaced or whose
article is deleted is best-effort: BlobStoreError is logged and swallowed so
the article write itself never fails because of the blob backend.

An upload that succeeded for a write that then failed (slug clash) is removed
again, also best-effort.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.errors import Conflict, NotFound, PayloadTooLarge, ValidationError
from blobs.store import BlobStore, BlobStoreError, StoredBlob
from core.database import now_iso
from news.models import Category, NewsItem
from news.slugs import slugify
from news.store import NewsStore

logger = logging.getLogger("newsdesk.news")

ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})


@dataclass(frozen=True)
class ImageUpload:
    data: bytes
    filename: str
    content_type: str


@dataclass(frozen=True)
class NewsPage:
    items: list[NewsItem]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def parse_category(value: str) -> Category:
    try:
        return Category(value)
    except ValueError as exc:
        allowed = ", ".join(c.value for c in Category)
        raise ValidationError(f"Invalid category. Allowed values: {allowed}", code="invalid_category") from exc


class NewsService:
    def __init__(self, store: NewsStore, blobs: BlobStore, max_image_bytes: int) -> None:
        self.store = store
        self.blobs = blobs
        self.max_image_bytes = max_image_bytes

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_published(
        self,
        *,
        news_id: Optional[str] = None,
        slug: Optional[str] = None,
        category: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> NewsPage:
        """Published articles, newest first.

        Raises NotFound when a single article was asked for by id or slug and
        nothing matched.
        """
        page = max(page, 1)
        limit = max(limit, 1)
        items, total = self.store.query(
            published_only=True,
            item_id=news_id,
            slug=slug,
            category=category,
            offset=(page - 1) * limit,
            limit=limit,
        )
        if (news_id or slug) and not items:
            raise NotFound("News not found")
        return NewsPage(items=items, total=total, page=page, limit=limit)

    def get(self, news_id: str) -> NewsItem:
        item = self.store.get(news_id)
        if item is None:
            raise NotFound("News not found")
        return item

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        *,
        author_id: str,
        title: str,
        content: str,
        category: str,
        is_published: bool = False,
        image: Optional[ImageUpload] = None,
    ) -> NewsItem:
        title = (title or "").strip()
        if not title or not content or not category:
            raise ValidationError("Title, content, and category are required")
        category_value = parse_category(category).value
        slug = slugify(title)
        if not slug:
            raise ValidationError("Title must contain at least one letter or digit")
        if self.store.get_by_slug(slug) is not None:
            raise Conflict("News with similar title already exists")

        stored = self._upload(image) if image is not None else None
        item = NewsItem(
            title=title,
            slug=slug,
            content=content,
            category=category_value,
            author_id=author_id,
            image_url=stored.url if stored else None,
            image_public_id=stored.public_id if stored else None,
            is_published=is_published,
            published_at=now_iso() if is_published else None,
        )
        try:
            item_id = self.store.create(item)
        except IntegrityError as exc:
            if stored is not None:
                self._discard_blob(stored.public_id, news_id=None)
            raise Conflict("News with similar title already exists") from exc
        logger.info("News %s created by %s (published=%s)", item_id, author_id, is_published)
        return self.get(item_id)

    def update(
        self,
        news_id: str,
        *,
        title: Optional[str] = None,
        content: Optional[str] = None,
        category: Optional[str] = None,
        is_published: Optional[bool] = None,
        image: Optional[ImageUpload] = None,
    ) -> NewsItem:
        """Partial update. Only the arguments that are given (and non-empty) change.

        Toggling is_published resets published_at: now when publishing,
        cleared when unpublishing. The slug is fixed at creation.
        """
        current = self.get(news_id)
        fields: dict = {}
        if category:
            fields["category"] = parse_category(category).value
        if title and title.strip():
            fields["title"] = title.strip()
        if content:
            fields["content"] = content
        if is_published is not None:
            fields["is_published"] = is_published
            fields["published_at"] = now_iso() if is_published else None

        stored = self._upload(image) if image is not None else None
        if stored is not None:
            fields["image_url"] = stored.url
            fields["image_public_id"] = stored.public_id

        if fields and not self.store.update(news_id, **fields):
            if stored is not None:
                self._discard_blob(stored.public_id, news_id=news_id)
            raise NotFound("News not found")

        if stored is not None and current.image_public_id:
            self._discard_blob(current.image_public_id, news_id=news_id)
        logger.info("News %s updated (%s)", news_id, ", ".join(sorted(fields)) or "no changes")
        return self.get(news_id)

    def delete(self, news_id: str) -> None:
        item = self.get(news_id)
        if item.image_public_id:
            self._discard_blob(item.image_public_id, news_id=news_id)
        if not self.store.delete(news_id):
            raise NotFound("News not found")
        logger.info("News %s deleted", news_id)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def validate_image(self, image: ImageUpload) -> None:
        if image.content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError(
                "Only JPEG, PNG, WEBP and GIF images are allowed",
                code="invalid_image_type",
            )
        if len(image.data) > self.max_image_bytes:
            raise PayloadTooLarge(f"Image exceeds the {self.max_image_bytes} byte limit")
        if not image.data:
            raise ValidationError("Image file is empty", code="invalid_image")

    def _upload(self, image: ImageUpload) -> StoredBlob:
        self.validate_image(image)
        return self.blobs.upload(image.data, image.filename, image.content_type)

    def _discard_blob(self, public_id: str, news_id: Optional[str]) -> None:
        try:
            self.blobs.delete(public_id)
        except BlobStoreError as exc:
            logger.warning("Failed to delete image %s for news %s: %s", public_id, news_id, exc)
