"""
api/routes/v1/auth.py -- Session endpoints: register, login, refresh, logout, me.

Routes:
  POST /api/v1/auth/register            -- create a user account (role=user)
  POST /api/v1/auth/login               -- password login; sets access cookie
  POST /api/v1/auth/login-with-refresh  -- password login; sets access + refresh cookies
  POST /api/v1/auth/refresh             -- mint a new access cookie from the refresh cookie
  POST /api/v1/auth/logout              -- clears both cookies; 200
  GET  /api/v1/auth/me                  -- current account (requires auth)

Security:
  Credential endpoints are rate-limited per client IP (Settings.login_rate_limit).
  AccountService.authenticate() runs bcrypt even for unknown emails -- never
    inline a lookup + verify here.
  Cache-Control: no-store on every response that carries a token.
  Logout is stateless: clearing the cookies is the whole revocation. A copied
    access token stays valid until it expires.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import credential_rate_limit, limiter
from api.models import (
    AccountSummary,
    LoginRequest,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
)
from auth.accounts import AccountService
from auth.dependencies import authenticate
from auth.errors import InvalidToken, Unauthorized
from auth.models import Account, Identity, TokenKind
from auth.tokens import TokenIssuer
from auth.transport import SessionTransport

# Auth policy:
# - POST /api/v1/auth/register:            public
# - POST /api/v1/auth/login:               public
# - POST /api/v1/auth/login-with-refresh:  public
# - POST /api/v1/auth/refresh:             public -- the refresh cookie is the credential
# - POST /api/v1/auth/logout:              public -- clearing cookies needs no prior auth
# - GET  /api/v1/auth/me:                  requires auth (authenticate)
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(credential_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an account with role=user. 409 if the email is already registered."""
    service: AccountService = request.app.state.accounts
    account = service.register(body.name, body.email, body.password)
    return RegisterResponse(
        message="User registered successfully",
        user=AccountSummary(id=account.id, name=account.name, email=account.email),
    )


@limiter.limit(credential_rate_limit)
@router.post("/auth/login", response_model=MessageResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the access token cookie.

    401 for an unknown email or a wrong password (same message for both),
    403 for a disabled account.
    """
    service: AccountService = request.app.state.accounts
    account = service.authenticate(body.email, body.password)
    return _session_response(request, account, with_refresh=False)


@limiter.limit(credential_rate_limit)
@router.post("/auth/login-with-refresh", response_model=MessageResponse)
def login_with_refresh(request: Request, body: LoginRequest) -> JSONResponse:
    """Same checks as /auth/login, but also sets the long-lived refresh cookie."""
    service: AccountService = request.app.state.accounts
    account = service.authenticate(body.email, body.password)
    return _session_response(request, account, with_refresh=True)


@limiter.limit(credential_rate_limit)
@router.post("/auth/refresh", response_model=MessageResponse)
def refresh(request: Request) -> JSONResponse:
    """Rotate the access token cookie using the refresh token cookie.

    The account is re-read: a deleted account gets 401, a disabled one 403,
    and the new access token carries the account's current role.
    """
    transport: SessionTransport = request.app.state.transport
    tokens: TokenIssuer = request.app.state.tokens
    service: AccountService = request.app.state.accounts

    token = transport.extract_refresh_token(request)
    if not token:
        raise Unauthorized("Refresh token missing")
    try:
        identity = tokens.verify(token, TokenKind.refresh)
    except InvalidToken as exc:
        raise Unauthorized("Invalid or expired refresh token") from exc

    account = service.resolve_refresh(identity)
    resp = JSONResponse(content=MessageResponse(message="Access token refreshed").model_dump())
    transport.attach(resp, TokenKind.access, tokens.issue_access(account.id, account.role))
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Clear both session cookies."""
    transport: SessionTransport = request.app.state.transport
    resp = JSONResponse(content=MessageResponse(message="Logged out successfully").model_dump())
    transport.clear(resp)
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, identity: Identity = Depends(authenticate)) -> MeResponse:
    """Return the account behind the current access token."""
    service: AccountService = request.app.state.accounts
    account = service.accounts.get_by_id(identity.subject_id)
    if account is None:
        raise Unauthorized("Account no longer exists")
    return MeResponse.from_account(account)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_response(request: Request, account: Account, *, with_refresh: bool) -> JSONResponse:
    transport: SessionTransport = request.app.state.transport
    tokens: TokenIssuer = request.app.state.tokens

    resp = JSONResponse(content=MessageResponse(message="Login successful").model_dump())
    transport.attach(resp, TokenKind.access, tokens.issue_access(account.id, account.role))
    if with_refresh:
        transport.attach(resp, TokenKind.refresh, tokens.issue_refresh(account.id, account.role))
    resp.headers["Cache-Control"] = "no-store"
    return resp
