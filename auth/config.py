"""
auth/config.py -- Immutable auth configuration built once at startup.

Settings (core/config.py) is mutable and environment-facing. AuthConfig is the
frozen subset the token and cookie code actually needs. api/main.py builds it
once in lifespan and passes it to TokenIssuer and SessionTransport, so neither
reads configuration from module globals.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.models import TokenKind
from core.config import Settings

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


@dataclass(frozen=True)
class AuthConfig:
    access_token_secret: str
    refresh_token_secret: str
    access_token_ttl: int  # seconds
    refresh_token_ttl: int  # seconds
    cookie_secure: bool
    cookie_samesite: str
    bcrypt_rounds: int = 12
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthConfig:
        return cls(
            access_token_secret=settings.access_token_secret,
            refresh_token_secret=settings.refresh_token_secret,
            access_token_ttl=settings.access_token_expire_seconds,
            refresh_token_ttl=settings.refresh_token_expire_seconds,
            cookie_secure=bool(settings.secure_cookies),
            cookie_samesite=settings.cookie_samesite or "strict",
            bcrypt_rounds=settings.bcrypt_rounds,
        )

    def secret_for(self, kind: TokenKind) -> str:
        return self.access_token_secret if kind is TokenKind.access else self.refresh_token_secret

    def ttl_for(self, kind: TokenKind) -> int:
        return self.access_token_ttl if kind is TokenKind.access else self.refresh_token_ttl

    def cookie_name_for(self, kind: TokenKind) -> str:
        return ACCESS_COOKIE if kind is TokenKind.access else REFRESH_COOKIE
