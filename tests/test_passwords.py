"""
tests/test_passwords.py -- Unit tests for auth/passwords.py.

Covers:
  - hash/verify round trip, and mismatch returns False without raising
  - salting: two hashes of one password differ but both verify
  - empty password rejected at hash time; empty or malformed digest raises
  - the 72-byte bcrypt window is applied identically on hash and verify
"""

from __future__ import annotations

import pytest

from auth.passwords import hash_password, verify_password


class TestHashAndVerify:
    """Correct plaintext verifies; anything else is a plain False."""

    def test_round_trip(self) -> None:
        digest = hash_password("pw12345678", rounds=4)
        assert verify_password("pw12345678", digest) is True

    def test_wrong_password_returns_false(self) -> None:
        digest = hash_password("pw12345678", rounds=4)
        assert verify_password("wrong", digest) is False
        assert verify_password("pw123456789", digest) is False

    def test_digest_never_contains_plaintext(self) -> None:
        digest = hash_password("correct horse battery", rounds=4)
        assert "correct horse battery" not in digest
        assert digest.startswith("$2"), f"Expected a bcrypt digest, got {digest[:4]!r}"

    def test_hashes_are_salted(self) -> None:
        a = hash_password("same-password", rounds=4)
        b = hash_password("same-password", rounds=4)
        assert a != b, "Two hashes of one password must differ (random salt)"
        assert verify_password("same-password", a)
        assert verify_password("same-password", b)

    def test_unicode_password(self) -> None:
        digest = hash_password("pässwörd-ß-密码", rounds=4)
        assert verify_password("pässwörd-ß-密码", digest)
        assert not verify_password("passwort-ss-密码", digest)

    def test_long_password_matches_on_first_72_bytes(self) -> None:
        base = "x" * 72
        digest = hash_password(base + "tail-one", rounds=4)
        assert verify_password(base + "tail-two", digest), "bcrypt only reads 72 bytes"


class TestInvalidInput:
    """Only invalid input raises; a mismatch never does."""

    def test_empty_password_rejected(self) -> None:
        with pytest.raises(ValueError):
            hash_password("", rounds=4)

    def test_empty_digest_raises(self) -> None:
        with pytest.raises(ValueError):
            verify_password("anything", "")

    def test_malformed_digest_raises(self) -> None:
        with pytest.raises(ValueError):
            verify_password("anything", "not-a-bcrypt-hash")
