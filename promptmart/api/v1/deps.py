"""
FastAPI dependencies — database session, service wiring and auth guards.

This is the only place where ``settings`` is turned into configured
components; the services themselves receive everything via constructors.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from promptmart.core.config import settings
from promptmart.core.exceptions import ForbiddenError, InvalidToken
from promptmart.core.otp import OtpEngine
from promptmart.core.security import SessionIssuer
from promptmart.db.session import async_session_factory
from promptmart.models.user import User
from promptmart.services.auth_workflow import AuthWorkflow
from promptmart.services.credential_store import SqlCredentialStore
from promptmart.services.notifications import (ConsoleNotifier, Notifier,
                                             SendGridNotifier)
from promptmart.services.object_store import LocalObjectStore, ObjectStore
from promptmart.services.ratings import RatingService, SqlRatingStore, rating_locks

SESSION_COOKIE = "token"
logger = logging.getLogger(__name__)

# auto_error=False so we can fall back to the session cookie
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Components ──────────────────────────────────────────────────────
@lru_cache
def get_session_issuer() -> SessionIssuer:
    return SessionIssuer(
        secret=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        lifetime=timedelta(days=settings.SESSION_EXPIRE_DAYS),
    )


@lru_cache
def get_otp_engine() -> OtpEngine:
    return OtpEngine(
        secret=settings.SECRET_KEY,
        length=settings.OTP_LENGTH,
        ttl=timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
    )


@lru_cache
def get_notifier() -> Notifier:
    if settings.SENDGRID_API_KEY:
        return SendGridNotifier(settings.SENDGRID_API_KEY, settings.EMAIL_FROM)
    logger.warning("SENDGRID_API_KEY not set; emails are logged instead of sent")
    return ConsoleNotifier()


@lru_cache
def get_object_store() -> ObjectStore:
    return LocalObjectStore(settings.MEDIA_ROOT, settings.MEDIA_URL)


def get_auth_workflow(
    db: AsyncSession = Depends(get_db),
    otp: OtpEngine = Depends(get_otp_engine),
    sessions: SessionIssuer = Depends(get_session_issuer),
    notifier: Notifier = Depends(get_notifier),
) -> AuthWorkflow:
    return AuthWorkflow(SqlCredentialStore(db), otp, sessions, notifier)


def get_rating_service(db: AsyncSession = Depends(get_db)) -> RatingService:
    return RatingService(SqlRatingStore(db), rating_locks, max_retries=settings.RATING_MAX_RETRIES)


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    session_cookie: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
    sessions: SessionIssuer = Depends(get_session_issuer),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Validate the session from the Authorization header or the cookie."""
    # Priority: Header > Cookie
    final_token = token or session_cookie
    if not final_token:
        raise InvalidToken("Not authorized to access this route")

    claims = sessions.validate(final_token)
    user = await db.get(User, claims.user_id)
    if user is None:
        raise InvalidToken()
    return user


def ensure_owner_or_admin(owner_id: int, user: User, action: str) -> None:
    if owner_id != user.id and user.role != "admin":
        raise ForbiddenError(f"Not authorized to {action} this prompt")
