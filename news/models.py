"""
news/models.py -- Domain dataclasses for news articles.

Pure data containers. All persistence logic lives in news/store.py.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Category(str, Enum):
    politics = "politics"
    sports = "sports"
    technology = "technology"
    business = "business"
    health = "health"
    entertainment = "entertainment"


@dataclass
class NewsItem:
    """A news article owned by the account in author_id.

    image_public_id is the blob-store handle used to delete the image; it is
    None when the article has no image.

    id is None before the record is written to the database.
    """

    title: str
    slug: str
    content: str
    category: str
    author_id: str
    id: Optional[str] = None
    image_url: Optional[str] = None
    image_public_id: Optional[str] = None
    is_published: bool = False
    published_at: Optional[str] = None  # ISO 8601
    created_at: str = ""
    updated_at: str = ""
