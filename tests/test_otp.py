"""Tests for one-time passcode generation and verification."""

from datetime import datetime, timedelta, timezone

import pytest

from promptmart.core.otp import OtpEngine, OtpRecord

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine() -> OtpEngine:
    return OtpEngine(secret="otp-test-secret", length=6, ttl=timedelta(minutes=10))


def _off_by_one_digit(code: str) -> str:
    last = (int(code[-1]) + 1) % 10
    return code[:-1] + str(last)


def test_generate_returns_numeric_code_and_hashed_record(engine: OtpEngine):
    code, record = engine.generate(NOW)
    assert len(code) == 6 and code.isdigit()
    assert record.code_hash != code
    assert code not in record.code_hash
    assert record.expires_at == NOW + timedelta(minutes=10)


def test_verify_accepts_correct_code_before_expiry(engine: OtpEngine):
    code, record = engine.generate(NOW)
    assert engine.verify(record, code, NOW + timedelta(minutes=9)) is True


def test_verify_accepts_code_at_exact_expiry_instant(engine: OtpEngine):
    code, record = engine.generate(NOW)
    assert engine.verify(record, code, record.expires_at) is True


def test_verify_rejects_after_expiry(engine: OtpEngine):
    code, record = engine.generate(NOW)
    assert engine.verify(record, code, record.expires_at + timedelta(seconds=1)) is False


@pytest.mark.parametrize("supplied", ["", None, "abcdef", "0000000"])
def test_verify_rejects_garbage(engine: OtpEngine, supplied):
    _code, record = engine.generate(NOW)
    assert engine.verify(record, supplied, NOW) is False


def test_verify_rejects_code_differing_by_one_digit(engine: OtpEngine):
    code, record = engine.generate(NOW)
    assert engine.verify(record, _off_by_one_digit(code), NOW) is False


def test_verify_without_pending_record_is_false(engine: OtpEngine):
    assert engine.verify(None, "123456", NOW) is False


def test_verify_treats_naive_expiry_as_utc(engine: OtpEngine):
    """SQLite hands timestamps back without tzinfo."""
    code, record = engine.generate(NOW)
    naive = OtpRecord(code_hash=record.code_hash, expires_at=record.expires_at.replace(tzinfo=None))
    assert engine.verify(naive, code, NOW) is True
    assert engine.verify(naive, code, NOW + timedelta(minutes=11)) is False


def test_regenerating_replaces_previous_code(engine: OtpEngine):
    first_code, _first = engine.generate(NOW)
    second_code, second = engine.generate(NOW)
    assert engine.verify(second, second_code, NOW) is True
    if first_code != second_code:
        assert engine.verify(second, first_code, NOW) is False


def test_hash_depends_on_secret():
    code, record = OtpEngine(secret="one").generate(NOW)
    assert OtpEngine(secret="two").verify(record, code, NOW) is False


def test_codes_are_zero_padded():
    engine = OtpEngine(secret="s", length=4)
    codes = {engine.generate(NOW)[0] for _ in range(200)}
    assert all(len(c) == 4 and c.isdigit() for c in codes)


def test_rejects_too_short_codes():
    with pytest.raises(ValueError):
        OtpEngine(secret="s", length=3)
