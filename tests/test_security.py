"""Tests for password hashing and session tokens."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from promptmart.core.exceptions import ExpiredToken, InvalidToken
from promptmart.core.security import (SessionIssuer, get_password_hash,
                                      verify_password)

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
SECRET = "session-test-secret"


@pytest.fixture
def issuer() -> SessionIssuer:
    return SessionIssuer(SECRET, "HS256", timedelta(days=7))


def test_password_hash_is_salted_and_verifiable():
    first = get_password_hash("password123")
    second = get_password_hash("password123")
    assert first != second
    assert "password123" not in first
    assert verify_password("password123", first)
    assert not verify_password("password124", first)


def test_issue_then_validate_returns_claims(issuer: SessionIssuer):
    session = issuer.issue(42, "admin", NOW)
    assert session.expires_at == NOW + timedelta(days=7)

    claims = issuer.validate(session.token, NOW + timedelta(days=1))
    assert claims.user_id == 42
    assert claims.role == "admin"


def test_expired_token_is_rejected(issuer: SessionIssuer):
    session = issuer.issue(1, "user", NOW)
    with pytest.raises(ExpiredToken):
        issuer.validate(session.token, NOW + timedelta(days=7, seconds=1))


def test_tampered_signature_is_rejected(issuer: SessionIssuer):
    token = issuer.issue(1, "user", NOW).token
    header, payload, signature = token.split(".")
    flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
    with pytest.raises(InvalidToken):
        issuer.validate(f"{header}.{payload}.{flipped}", NOW)


def test_tampered_payload_is_rejected(issuer: SessionIssuer):
    forged = jwt.encode(
        {"sub": "1", "role": "admin", "exp": int((NOW + timedelta(days=1)).timestamp()), "type": "session"},
        "some-other-secret",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        issuer.validate(forged, NOW)


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_malformed_token_is_rejected(issuer: SessionIssuer, token: str):
    with pytest.raises(InvalidToken):
        issuer.validate(token, NOW)


def test_token_of_another_type_is_rejected(issuer: SessionIssuer):
    token = jwt.encode(
        {"sub": "1", "role": "user", "exp": int((NOW + timedelta(days=1)).timestamp()), "type": "refresh"},
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        issuer.validate(token, NOW)
