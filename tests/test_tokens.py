"""
tests/test_tokens.py -- Unit tests for auth/tokens.py (TokenIssuer).

Covers:
  - issue -> verify round trip for both kinds, same subject and role
  - expiry: valid just inside the TTL, InvalidToken just past it
  - wrong secret, altered payload, garbage and empty tokens fail closed
  - a token of one kind never verifies as the other, even under one secret
  - unknown role and missing subject claims are rejected
"""

from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.config import AuthConfig
from auth.errors import InvalidToken, Unauthorized
from auth.models import Role, TokenKind
from auth.tokens import TokenIssuer

CONFIG = AuthConfig(
    access_token_secret="a" * 40,
    refresh_token_secret="r" * 40,
    access_token_ttl=900,
    refresh_token_ttl=7 * 24 * 3600,
    cookie_secure=False,
    cookie_samesite="lax",
    bcrypt_rounds=4,
)


def _issuer_at(offset_seconds: float) -> TokenIssuer:
    """Issuer whose clock is shifted by offset_seconds (negative = in the past)."""
    return TokenIssuer(CONFIG, clock=lambda: datetime.now(timezone.utc) + timedelta(seconds=offset_seconds))


def _b64(data: dict) -> str:
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


class TestRoundTrip:
    def test_access_round_trip(self) -> None:
        issuer = TokenIssuer(CONFIG)
        identity = issuer.verify(issuer.issue_access("acc-1", Role.editor), TokenKind.access)
        assert identity.subject_id == "acc-1"
        assert identity.role is Role.editor
        assert identity.kind is TokenKind.access

    def test_access_and_refresh_carry_same_claims(self) -> None:
        issuer = TokenIssuer(CONFIG)
        access = issuer.verify(issuer.issue_access("acc-2", Role.admin), TokenKind.access)
        refresh = issuer.verify(issuer.issue_refresh("acc-2", Role.admin), TokenKind.refresh)
        assert (access.subject_id, access.role) == (refresh.subject_id, refresh.role)

    def test_expiry_matches_kind_ttl(self) -> None:
        issuer = TokenIssuer(CONFIG)
        before = datetime.now(timezone.utc)
        access = issuer.verify(issuer.issue_access("x", Role.user), TokenKind.access)
        refresh = issuer.verify(issuer.issue_refresh("x", Role.user), TokenKind.refresh)
        assert abs((access.expires_at - before).total_seconds() - 900) < 5
        assert abs((refresh.expires_at - before).total_seconds() - 7 * 24 * 3600) < 5

    def test_ttl_seconds(self) -> None:
        issuer = TokenIssuer(CONFIG)
        assert issuer.ttl_seconds(TokenKind.access) == 900
        assert issuer.ttl_seconds(TokenKind.refresh) == 7 * 24 * 3600


class TestExpiry:
    """A token issued with TTL T verifies at T-e and fails at T+e."""

    def test_access_valid_just_before_expiry(self) -> None:
        token = _issuer_at(-(900 - 10)).issue_access("acc", Role.user)
        assert TokenIssuer(CONFIG).verify(token, TokenKind.access).subject_id == "acc"

    def test_access_invalid_just_after_expiry(self) -> None:
        token = _issuer_at(-(900 + 10)).issue_access("acc", Role.user)
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(token, TokenKind.access)

    def test_refresh_invalid_after_expiry(self) -> None:
        token = _issuer_at(-(7 * 24 * 3600 + 10)).issue_refresh("acc", Role.user)
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(token, TokenKind.refresh)

    def test_invalid_token_is_unauthorized(self) -> None:
        assert issubclass(InvalidToken, Unauthorized)
        assert InvalidToken("x").status_code == 401


class TestTampering:
    """Wrong secret or altered structure always fails verification."""

    def test_wrong_secret(self) -> None:
        payload = {"sub": "acc", "role": "admin", "type": "access", "exp": 9_999_999_999}
        forged = jwt.encode(payload, "z" * 40, algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(forged, TokenKind.access)

    def test_altered_payload(self) -> None:
        issuer = TokenIssuer(CONFIG)
        header, payload, signature = issuer.issue_access("acc", Role.user).split(".")
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        claims["role"] = "admin"
        tampered = ".".join([header, _b64(claims), signature])
        with pytest.raises(InvalidToken):
            issuer.verify(tampered, TokenKind.access)

    @pytest.mark.parametrize("garbage", ["not-a-token", "a.b.c", "....", "eyJhbGciOiJIUzI1NiJ9"])
    def test_garbage(self, garbage: str) -> None:
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(garbage, TokenKind.access)

    def test_empty_token(self) -> None:
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify("", TokenKind.access)


class TestKindSeparation:
    def test_refresh_token_rejected_as_access(self) -> None:
        issuer = TokenIssuer(CONFIG)
        with pytest.raises(InvalidToken):
            issuer.verify(issuer.issue_refresh("acc", Role.user), TokenKind.access)

    def test_access_token_rejected_as_refresh(self) -> None:
        issuer = TokenIssuer(CONFIG)
        with pytest.raises(InvalidToken):
            issuer.verify(issuer.issue_access("acc", Role.user), TokenKind.refresh)

    def test_type_claim_checked_even_with_matching_secret(self) -> None:
        payload = {"sub": "acc", "role": "user", "type": "refresh", "exp": 9_999_999_999}
        token = jwt.encode(payload, CONFIG.access_token_secret, algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(token, TokenKind.access)


class TestClaims:
    def _encode(self, **claims) -> str:
        payload = {"sub": "acc", "role": "user", "type": "access", "exp": 9_999_999_999, **claims}
        payload = {k: v for k, v in payload.items() if v is not None}
        return jwt.encode(payload, CONFIG.access_token_secret, algorithm="HS256")

    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(self._encode(role="superuser"), TokenKind.access)

    def test_missing_subject_rejected(self) -> None:
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(self._encode(sub=None), TokenKind.access)

    def test_missing_expiry_rejected(self) -> None:
        with pytest.raises(InvalidToken):
            TokenIssuer(CONFIG).verify(self._encode(exp=None), TokenKind.access)
