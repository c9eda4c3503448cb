"""
User model — credentials, verification state and pending OTP.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from promptmart.core.otp import OtpRecord
from promptmart.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="user",
        server_default="user",
    )  # user | admin
    is_verified: bool = Column(Boolean, default=False, server_default="false", nullable=False)  # type: ignore[assignment]

    # Pending OTP; both columns are NULL unless a verification/reset is in flight
    otp_code_hash: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    otp_expires_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]

    profile_pic_key: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    profile_pic_url: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def otp(self) -> OtpRecord | None:
        if self.otp_code_hash is None or self.otp_expires_at is None:
            return None
        return OtpRecord(code_hash=self.otp_code_hash, expires_at=self.otp_expires_at)

    @property
    def profile_pic(self) -> dict | None:
        if self.profile_pic_key is None:
            return None
        return {"storage_key": self.profile_pic_key, "url": self.profile_pic_url}
