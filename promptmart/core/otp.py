"""
One-time passcodes for email verification and password reset.

Only an HMAC of the code is ever stored; the plaintext goes out by email
and is forgotten.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


@dataclass(frozen=True)
class OtpRecord:
    code_hash: str
    expires_at: datetime


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class OtpEngine:
    def __init__(self, secret: str, length: int = 6, ttl: timedelta = timedelta(minutes=10)):
        if length < 4:
            raise ValueError("OTP length must be at least 4 digits")
        self._key = secret.encode("utf-8")
        self.length = length
        self.ttl = ttl

    def _hash(self, code: str) -> str:
        return hmac.new(self._key, code.encode("utf-8"), hashlib.sha256).hexdigest()

    def generate(self, now: datetime | None = None) -> tuple[str, OtpRecord]:
        """Return ``(plaintext_code, record_to_store)``."""
        code = str(secrets.randbelow(10**self.length)).zfill(self.length)
        issued_at = now or datetime.now(timezone.utc)
        return code, OtpRecord(code_hash=self._hash(code), expires_at=issued_at + self.ttl)

    def verify(self, record: OtpRecord | None, supplied: str | None, now: datetime | None = None) -> bool:
        """True iff *supplied* matches an unexpired *record*.

        Missing state, expiry and a wrong code all look the same to the
        caller.
        """
        if record is None or not supplied:
            return False
        current = _ensure_utc(now or datetime.now(timezone.utc))
        if current > _ensure_utc(record.expires_at):
            return False
        return hmac.compare_digest(self._hash(str(supplied).strip()), record.code_hash)
