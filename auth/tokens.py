"""
auth/tokens.py -- Issue and verify signed session tokens (python-jose, HS256).

Two kinds of token share one shape -- sub (account id), role, type, iat, exp --
but each kind is signed with its own secret and carries its own lifetime:

  access   short-lived (minutes), proves identity on every request
  refresh  long-lived (days), used only to mint a new access token

Verification is stateless: a token is valid when its signature checks out
against the secret for the expected kind, it has not expired, and its `type`
claim names that kind. Every failure -- expired, tampered, malformed, wrong
kind, missing claims -- raises the single InvalidToken error. There is no
server-side revocation list; logout only clears cookies, so a stolen access
token stays usable until it expires. That staleness window is bounded by the
access token TTL.

TokenIssuer is the only component allowed to mint or validate tokens.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.config import AuthConfig
from auth.errors import InvalidToken
from auth.models import Identity, Role, TokenKind

logger = logging.getLogger("newsdesk.auth")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Mint and verify access/refresh tokens from one immutable AuthConfig.

    `clock` only affects issuance. Verification always checks expiry against
    the real current time, so tests backdate issuance to produce tokens that
    are just inside or just outside their lifetime.
    """

    def __init__(self, config: AuthConfig, clock: Callable[[], datetime] = _utcnow) -> None:
        self._config = config
        self._clock = clock

    def issue(self, kind: TokenKind, subject_id: str, role: Role) -> str:
        now = self._clock()
        payload = {
            "sub": str(subject_id),
            "role": Role(role).value,
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self._config.ttl_for(kind))).timestamp()),
        }
        return jwt.encode(payload, self._config.secret_for(kind), algorithm=self._config.algorithm)

    def issue_access(self, subject_id: str, role: Role) -> str:
        return self.issue(TokenKind.access, subject_id, role)

    def issue_refresh(self, subject_id: str, role: Role) -> str:
        return self.issue(TokenKind.refresh, subject_id, role)

    def ttl_seconds(self, kind: TokenKind) -> int:
        return self._config.ttl_for(kind)

    def verify(self, token: str, kind: TokenKind) -> Identity:
        """Decode `token` as a token of `kind` and return its claims.

        Raises InvalidToken on any failure. Fail closed: nothing about a token
        that does not verify is trusted or reported back to the caller.
        """
        if not token:
            raise InvalidToken("Token is missing.")
        try:
            payload = jwt.decode(token, self._config.secret_for(kind), algorithms=[self._config.algorithm])
        except JWTError as exc:
            logger.debug("Rejected %s token: %s", kind.value, exc)
            raise InvalidToken(f"Invalid or expired {kind.value} token.") from exc

        if payload.get("type") != kind.value:
            raise InvalidToken(f"Invalid or expired {kind.value} token.")
        subject_id = payload.get("sub")
        exp = payload.get("exp")
        try:
            role = Role(payload.get("role"))
        except ValueError as exc:
            raise InvalidToken(f"Invalid or expired {kind.value} token.") from exc
        if not subject_id or not isinstance(exp, int):
            raise InvalidToken(f"Invalid or expired {kind.value} token.")

        return Identity(
            subject_id=str(subject_id),
            role=role,
            kind=kind,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
