"""
Auth workflow — registration, OTP verification, login and password reset.

Per-user states::

    Unregistered ──register──▶ PendingVerification ──verify──▶ Verified
    Verified ──forgot_password──▶ PasswordResetPending ──reset──▶ Verified

A failed transition leaves the user record untouched, with two
compensations on email delivery failure: ``register`` deletes the new
account so the email can be reused, ``forgot_password`` only clears the
pending OTP.
"""

from __future__ import annotations

import logging
from datetime import datetime

from starlette.concurrency import run_in_threadpool

from promptmart.core.exceptions import (AlreadyVerified, DeliveryFailed,
                                        DuplicateEmail, InvalidCredentials,
                                        InvalidOrExpiredOTP,
                                        MissingCredentials, NotFoundError,
                                        NotVerified)
from promptmart.core.otp import OtpEngine
from promptmart.core.security import (IssuedSession, SessionIssuer,
                                      dummy_verify, get_password_hash,
                                      verify_password)
from promptmart.models.user import User
from promptmart.services.credential_store import CredentialStore
from promptmart.services.notifications import (NotificationError, Notifier,
                                               otp_email)

logger = logging.getLogger(__name__)

_CLEARED_OTP = {"otp_code_hash": None, "otp_expires_at": None}


class AuthWorkflow:
    def __init__(
        self,
        store: CredentialStore,
        otp: OtpEngine,
        sessions: SessionIssuer,
        notifier: Notifier,
    ) -> None:
        self.store = store
        self.otp = otp
        self.sessions = sessions
        self.notifier = notifier

    # ── Helpers ─────────────────────────────────────────────────────
    async def _attach_otp(self, user: User, now: datetime | None) -> tuple[User, str]:
        """Overwrite any pending OTP on *user* with a fresh one."""
        code, record = self.otp.generate(now)
        user = await self.store.update_fields(
            user.id,
            otp_code_hash=record.code_hash,
            otp_expires_at=record.expires_at,
        )
        return user, code

    async def _send_code(self, user: User, code: str, purpose: str) -> None:
        ttl_minutes = int(self.otp.ttl.total_seconds() // 60)
        subject, body = otp_email(user.name, code, purpose, ttl_minutes)
        await self.notifier.deliver(user.email, subject, body)

    async def _require_user(self, user_id: int) -> User:
        user = await self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("Invalid user ID")
        return user

    # ── Transitions ─────────────────────────────────────────────────
    async def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
        now: datetime | None = None,
    ) -> User:
        email = email.strip().lower()
        if await self.store.find_by_email(email) is not None:
            raise DuplicateEmail()

        hashed = await run_in_threadpool(get_password_hash, password)
        user = await self.store.create(
            name=name,
            email=email,
            phone=phone,
            hashed_password=hashed,
            role="user",
            is_verified=False,
        )
        user, code = await self._attach_otp(user, now)

        try:
            await self._send_code(user, code, "verify")
        except NotificationError as exc:
            logger.error("Verification email to %s failed, rolling back registration", email)
            await self.store.delete_by_id(user.id)
            raise DeliveryFailed("Email could not be sent. Registration failed.") from exc

        logger.info("Registered user %s (pending verification)", user.id)
        return user

    async def verify_registration(
        self,
        user_id: int,
        code: str | None,
        now: datetime | None = None,
    ) -> tuple[User, IssuedSession]:
        user = await self._require_user(user_id)
        if user.is_verified:
            raise AlreadyVerified()
        if not self.otp.verify(user.otp, code, now):
            raise InvalidOrExpiredOTP()

        user = await self.store.update_fields(user.id, is_verified=True, **_CLEARED_OTP)
        logger.info("User %s verified", user.id)
        return user, self.sessions.issue(user.id, user.role, now)

    async def resend_verification(self, user_id: int, now: datetime | None = None) -> User:
        user = await self._require_user(user_id)
        if user.is_verified:
            raise AlreadyVerified()

        user, code = await self._attach_otp(user, now)
        try:
            await self._send_code(user, code, "verify")
        except NotificationError as exc:
            await self.store.update_fields(user.id, **_CLEARED_OTP)
            raise DeliveryFailed() from exc
        return user

    async def login(
        self,
        email: str | None,
        password: str | None,
        now: datetime | None = None,
    ) -> tuple[User, IssuedSession]:
        if not email or not password:
            raise MissingCredentials()

        user = await self.store.find_by_email(email)
        if user is None:
            await run_in_threadpool(dummy_verify)
            raise InvalidCredentials()
        if not user.is_verified:
            raise NotVerified()
        if not await run_in_threadpool(verify_password, password, user.hashed_password):
            raise InvalidCredentials()

        logger.info("User %s logged in", user.id)
        return user, self.sessions.issue(user.id, user.role, now)

    async def forgot_password(self, email: str, now: datetime | None = None) -> User:
        user = await self.store.find_by_email(email)
        if user is None:
            raise NotFoundError("There is no user with that email")

        user, code = await self._attach_otp(user, now)
        try:
            await self._send_code(user, code, "reset")
        except NotificationError as exc:
            logger.error("Password reset email to user %s failed", user.id)
            await self.store.update_fields(user.id, **_CLEARED_OTP)
            raise DeliveryFailed() from exc
        return user

    async def reset_password(
        self,
        user_id: int,
        code: str | None,
        new_password: str,
        now: datetime | None = None,
    ) -> User:
        user = await self._require_user(user_id)
        if not self.otp.verify(user.otp, code, now):
            raise InvalidOrExpiredOTP()

        hashed = await run_in_threadpool(get_password_hash, new_password)
        user = await self.store.update_fields(user.id, hashed_password=hashed, **_CLEARED_OTP)
        logger.info("Password reset for user %s", user.id)
        return user
