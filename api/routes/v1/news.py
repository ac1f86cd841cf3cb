"""
api/routes/v1/news.py -- News article REST endpoints.

Routes:
  GET    /api/v1/news           -- published news (?id=&slug=&category=&page=&limit=)
  POST   /api/v1/news/filter    -- same filters as a JSON body
  POST   /api/v1/news           -- create (admin, editor); multipart form
  PUT    /api/v1/news/{id}      -- partial update (admin, editor); multipart form
  DELETE /api/v1/news/{id}      -- delete article and image (admin)

Reads are public and only ever return published articles. Writes take
multipart/form-data so an image can ride along with the text fields.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api.models import (
    MAX_PAGE_LIMIT,
    ErrorResponse,
    MessageResponse,
    NewsFilterRequest,
    NewsListResponse,
    NewsOut,
    NewsPagination,
    NewsResponse,
)
from auth.dependencies import require_admin, require_editor
from auth.models import Identity
from news.service import ImageUpload, NewsPage, NewsService

logger = logging.getLogger("newsdesk.api")

# Auth policy:
# - GET    /api/v1/news:         public
# - POST   /api/v1/news/filter:  public
# - POST   /api/v1/news:         admin, editor (require_editor)
# - PUT    /api/v1/news/{id}:    admin, editor (require_editor)
# - DELETE /api/v1/news/{id}:    admin (require_admin)
router = APIRouter(prefix="/news")


# ---------------------------------------------------------------------------
# Public reads
# ---------------------------------------------------------------------------


@router.get("", response_model=NewsListResponse)
def list_news(
    request: Request,
    id: Optional[str] = Query(default=None),
    slug: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_LIMIT),
) -> NewsListResponse:
    """Published news, newest first. 404 when id or slug is given and nothing matches."""
    service: NewsService = request.app.state.news
    result = service.list_published(news_id=id, slug=slug, category=category, page=page, limit=limit)
    return _list_response(result, paginated=True)


@router.post("/filter", response_model=NewsListResponse)
def filter_news(request: Request, body: NewsFilterRequest):
    """Body-driven variant of GET /news.

    The pagination block is only included when the body sets page or limit.
    Persistence failures are logged and reported as a plain 500.
    """
    service: NewsService = request.app.state.news
    paginated = body.page is not None or body.limit is not None
    try:
        result = service.list_published(
            news_id=body.id,
            slug=body.slug,
            category=body.category,
            page=body.page or 1,
            limit=body.limit or 10,
        )
    except SQLAlchemyError:
        logger.exception("News filter query failed")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(message="Failed to fetch news", code="internal_error").model_dump(
                exclude_none=True
            ),
        )
    return _list_response(result, paginated=paginated)


# ---------------------------------------------------------------------------
# Editor / admin writes
# ---------------------------------------------------------------------------


@router.post("", response_model=NewsResponse, status_code=201)
def create_news(
    request: Request,
    title: str = Form(default=""),
    content: str = Form(default=""),
    category: str = Form(default=""),
    is_published: bool = Form(default=False),
    image: Optional[UploadFile] = File(default=None),
    identity: Identity = Depends(require_editor),
) -> NewsResponse:
    service: NewsService = request.app.state.news
    item = service.create(
        author_id=identity.subject_id,
        title=title,
        content=content,
        category=category,
        is_published=is_published,
        image=_read_upload(image, service.max_image_bytes),
    )
    return NewsResponse(message="News created successfully", data=NewsOut.from_item(item))


@router.put("/{news_id}", response_model=NewsResponse)
def update_news(
    request: Request,
    news_id: str,
    title: Optional[str] = Form(default=None),
    content: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    is_published: Optional[bool] = Form(default=None),
    image: Optional[UploadFile] = File(default=None),
    identity: Identity = Depends(require_editor),
) -> NewsResponse:
    service: NewsService = request.app.state.news
    item = service.update(
        news_id,
        title=title,
        content=content,
        category=category,
        is_published=is_published,
        image=_read_upload(image, service.max_image_bytes),
    )
    return NewsResponse(message="News updated successfully", data=NewsOut.from_item(item))


@router.delete("/{news_id}", response_model=MessageResponse)
def delete_news(
    request: Request,
    news_id: str,
    identity: Identity = Depends(require_admin),
) -> MessageResponse:
    service: NewsService = request.app.state.news
    service.delete(news_id)
    return MessageResponse(message="News and image deleted successfully")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_upload(upload: Optional[UploadFile], max_bytes: int) -> Optional[ImageUpload]:
    # Browsers send an empty part with no filename when the file input is blank.
    if upload is None or not upload.filename:
        return None
    return ImageUpload(
        data=upload.file.read(max_bytes + 1),  # one extra byte is enough to detect oversize
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
    )


def _list_response(result: NewsPage, *, paginated: bool) -> NewsListResponse:
    pagination = None
    if paginated:
        pagination = NewsPagination(
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
            total_results=result.total,
        )
    return NewsListResponse(data=[NewsOut.from_item(i) for i in result.items], pagination=pagination)
