"""
auth/transport.py -- Carry session tokens in and out of HTTP requests.

Extraction order for the access token:
  1. Authorization: Bearer <token> header -- programmatic clients.
  2. "accessToken" cookie -- browsers.
The header wins when both are present, so a script can act as a different
identity than the browser session on the same machine.

The refresh token only travels as the "refreshToken" cookie.

Cookie attributes:
  httponly=True: JS cannot read the cookie (XSS mitigation).
  samesite: "strict" in production, "lax" in development (AuthConfig).
  secure: only sent over HTTPS when enabled (on by default in production).
  max_age: matches the token lifetime so cookie and token expire together.

clear() deletes both cookies with exactly the attributes used to set them.
Browsers match cookies by name, path and domain, and some drop a deletion
whose secure/samesite flags disagree with the stored cookie.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import Response

from auth.config import AuthConfig
from auth.models import TokenKind


class SessionTransport:
    def __init__(self, config: AuthConfig) -> None:
        self._config = config

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract_access_token(self, request: Request) -> str | None:
        bearer = _bearer_token(request.headers.get("Authorization", ""))
        if bearer:
            return bearer
        return request.cookies.get(self._config.cookie_name_for(TokenKind.access)) or None

    def extract_refresh_token(self, request: Request) -> str | None:
        return request.cookies.get(self._config.cookie_name_for(TokenKind.refresh)) or None

    # ------------------------------------------------------------------
    # Attachment
    # ------------------------------------------------------------------

    def attach(self, response: Response, kind: TokenKind, token: str) -> None:
        response.set_cookie(
            self._config.cookie_name_for(kind),
            value=token,
            max_age=self._config.ttl_for(kind),
            path="/",
            httponly=True,
            secure=self._config.cookie_secure,
            samesite=self._config.cookie_samesite,
        )

    def clear(self, response: Response) -> None:
        for kind in TokenKind:
            response.delete_cookie(
                self._config.cookie_name_for(kind),
                path="/",
                httponly=True,
                secure=self._config.cookie_secure,
                samesite=self._config.cookie_samesite,
            )


def _bearer_token(header: str) -> str | None:
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credentials.strip() or None
