"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

Authentication Gate:
  authenticate() pulls the access token from the request (Bearer header
  first, then the "accessToken" cookie), verifies it with the app's
  TokenIssuer and binds the resulting Identity to request.state.identity.
  It never loads the account: role decisions trust the role embedded in the
  token, so a role change or disable takes effect at the next refresh. The
  staleness window is bounded by the access token TTL.

Authorization Gate:
  authorize(roles) builds a dependency that runs the authentication gate,
  then checks identity.role against a fixed frozenset of allowed roles.
  check_role() is the pure decision underneath, usable without HTTP.

    @router.delete("/news/{news_id}")
    def delete_news(..., identity: Identity = Depends(require_admin)): ...

Layer rule: no imports from api/, news/, or blobs/.
  auth/dependencies.py may import from fastapi (for Depends/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from fastapi import Depends, Request

from auth.errors import Forbidden, InvalidToken, Unauthorized
from auth.models import Identity, Role, TokenKind
from auth.tokens import TokenIssuer
from auth.transport import SessionTransport


def authenticate(request: Request) -> Identity:
    """Require a valid access token. Raises Unauthorized (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/auth/me")
        def me(identity: Identity = Depends(authenticate)): ...
    """
    transport: SessionTransport = request.app.state.transport
    tokens: TokenIssuer = request.app.state.tokens

    token = transport.extract_access_token(request)
    if not token:
        raise Unauthorized("Access token missing")
    try:
        identity = tokens.verify(token, TokenKind.access)
    except InvalidToken as exc:
        raise Unauthorized("Invalid or expired access token") from exc

    request.state.identity = identity
    return identity


def check_role(identity: Identity | None, allowed_roles: frozenset[Role]) -> Identity:
    """Return identity if its role is allowed, else raise Forbidden (403)."""
    if identity is None:
        raise Forbidden("Access denied")
    if identity.role not in allowed_roles:
        raise Forbidden("You do not have permission to perform this action")
    return identity


def authorize(allowed_roles: Iterable[Role]) -> Callable[..., Identity]:
    """Build a dependency that admits only identities whose role is in allowed_roles."""
    allowed = frozenset(Role(r) for r in allowed_roles)
    if not allowed:
        raise ValueError("authorize() needs at least one role.")

    def dependency(identity: Identity = Depends(authenticate)) -> Identity:
        return check_role(identity, allowed)

    return dependency


require_admin = authorize({Role.admin})
require_editor = authorize({Role.admin, Role.editor})
