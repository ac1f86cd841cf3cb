"""
api/main.py -- FastAPI application entry point for Newsdesk.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins;
                              credentials allowed so session cookies flow
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds every service once from Settings and hangs it on app.state:

  app.state.tokens     TokenIssuer       (frozen AuthConfig injected)
  app.state.transport  SessionTransport  (same AuthConfig)
  app.state.accounts   AccountService
  app.state.news       NewsService

Route handlers and auth dependencies read from app.state only; nothing reads
secrets from module globals.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.news import router as news_router
from auth.accounts import AccountService
from auth.config import AuthConfig
from auth.dependencies import authenticate
from auth.errors import AppError
from auth.models import Identity
from auth.store import AccountStore
from auth.tokens import TokenIssuer
from auth.transport import SessionTransport
from blobs.store import BlobStore, BlobStoreError, create_blob_store
from core.config import Settings, get_settings
from core.database import create_db_engine
from news.service import NewsService
from news.store import NewsStore

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("newsdesk.api")

settings = get_settings()


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


def init_state(state: Any, *, settings: Settings, engine: Engine, blobs: BlobStore) -> None:
    """Build every service from one Settings instance and attach it to `state`.

    Shared by lifespan and the test suite so both wire the app identically.
    AuthConfig is built once here and handed to both token and cookie code.
    """
    auth_config = AuthConfig.from_settings(settings)
    account_store = AccountStore(engine)
    news_store = NewsStore(engine)

    state.settings = settings
    state.engine = engine
    state.blobs = blobs
    state.auth_config = auth_config
    state.tokens = TokenIssuer(auth_config)
    state.transport = SessionTransport(auth_config)
    state.accounts = AccountService(account_store, news_store, blobs, bcrypt_rounds=auth_config.bcrypt_rounds)
    state.news = NewsService(news_store, blobs, max_image_bytes=settings.max_image_bytes)


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The engine is disposed symmetrically even if a request handler
    left connections checked out.
    """
    logger.info("Newsdesk API starting up")
    current = get_settings()
    engine = create_db_engine(current.database_url)
    init_state(app.state, settings=current, engine=engine, blobs=create_blob_store(current))
    if not app.state.accounts.accounts.has_admin():
        logger.warning("No admin account exists -- run `python main.py seed-admin`")
    logger.info("Services initialized (blob_backend=%s)", current.blob_backend)

    yield

    engine.dispose()
    logger.info("Newsdesk API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Newsdesk API",
    description="News publishing backend with cookie or bearer session auth and role-based access.",
    version=API_VERSION,
    lifespan=lifespan,
    # Disable built-in /docs and /redoc so we can add auth protection.
    # Auth-protected equivalents are registered below.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])
app.include_router(news_router, prefix="/api/v1", tags=["News"])

# Locally stored images are served from the same origin. Cloudinary URLs are
# absolute and need no mount.
if settings.blob_backend == "local" and settings.blob_public_base_url.startswith("/"):
    Path(settings.blob_local_dir).mkdir(parents=True, exist_ok=True)
    app.mount(
        settings.blob_public_base_url,
        StaticFiles(directory=settings.blob_local_dir, check_dir=False),
        name="uploads",
    )


# ---------------------------------------------------------------------------
# Auth-protected API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(identity: Identity = Depends(authenticate)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Newsdesk API")


@app.get("/redoc", include_in_schema=False)
async def redoc(identity: Identity = Depends(authenticate)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="Newsdesk API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope ({message, code} plus an
# optional detail) so API clients can parse errors uniformly.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, code: str, detail: str | None = None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code, detail=detail).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render service-layer errors (400/401/403/404/409/413) with their own status."""
    return _error(exc.status_code, exc.message, exc.code, headers=exc.headers)


@app.exception_handler(BlobStoreError)
async def blob_store_error_handler(request: Request, exc: BlobStoreError) -> JSONResponse:
    """An image upload failed upstream. Deletions never get here -- they are best-effort."""
    logger.error("Blob store failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(502, "Image storage is unavailable. Try again later.", "blob_store_error")


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    return _error(
        429,
        "Too many requests.",
        "rate_limited",
        detail=str(exc.detail),
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body or query parameters fail validation."""
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors())
    return _error(400, "Request validation failed.", "validation_error", detail=fields or None)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured body for framework-raised HTTP errors (unknown route, wrong method)."""
    return _error(exc.status_code, str(exc.detail), f"http_{exc.status_code}", headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged with its traceback, never written to the
    response body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "An unexpected error occurred.", "internal_error")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No rate limit applied -- monitoring must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    database = "ok"
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check database probe failed")
        database = "unavailable"
    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        version=API_VERSION,
        components={"database": database},
    )
