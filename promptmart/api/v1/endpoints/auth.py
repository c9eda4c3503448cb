"""
Auth endpoints — registration with email OTP, login, password reset.

The session token is returned in the body and as an HttpOnly cookie
whose lifetime matches the token's own expiry.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from promptmart.api.v1.deps import (SESSION_COOKIE, get_auth_workflow,
                                    get_current_user)
from promptmart.core.config import settings
from promptmart.core.security import IssuedSession
from promptmart.models.user import User
from promptmart.schemas.auth import (ForgotPasswordRequest, LoginRequest,
                                     MessageResponse, OtpSentResponse,
                                     ResendOtpRequest, ResetPasswordRequest,
                                     SessionResponse, VerifyOtpRequest)
from promptmart.schemas.user import UserCreate, UserRead
from promptmart.services.auth_workflow import AuthWorkflow

# Rate limiter keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


def _set_session_cookie(response: Response, session: IssuedSession) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=session.token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        expires=session.expires_at,
    )


def _session_response(response: Response, user: User, session: IssuedSession) -> SessionResponse:
    _set_session_cookie(response, session)
    return SessionResponse(
        access_token=session.token,
        expires_at=session.expires_at,
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=OtpSentResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def register(
    request: Request,
    body: UserCreate,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
) -> OtpSentResponse:
    """Create an unverified account and email it a verification code."""
    user = await workflow.register(body.name, body.email, body.password, body.phone)
    return OtpSentResponse(
        message="OTP sent to your email. Please verify to complete registration.",
        user_id=user.id,
    )


@router.post("/verify-otp", response_model=SessionResponse)
@limiter.limit("10/minute")
async def verify_otp(
    request: Request,
    response: Response,
    body: VerifyOtpRequest,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
) -> SessionResponse:
    """Confirm the registration code and log the user straight in."""
    user, session = await workflow.verify_registration(body.user_id, body.otp)
    return _session_response(response, user, session)


@router.post("/resend-otp", response_model=OtpSentResponse)
@limiter.limit("3/minute")
async def resend_otp(
    request: Request,
    body: ResendOtpRequest,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
) -> OtpSentResponse:
    user = await workflow.resend_verification(body.user_id)
    return OtpSentResponse(message="A new OTP has been sent to your email", user_id=user.id)


@router.post("/login", response_model=SessionResponse)
@limiter.limit("5/minute")
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
) -> SessionResponse:
    """Authenticate with email/password. Returns 200 OK with an HttpOnly cookie."""
    user, session = await workflow.login(body.email, body.password)
    return _session_response(response, user, session)


@router.post("/forgot-password", response_model=OtpSentResponse)
@limiter.limit("3/minute")
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
) -> OtpSentResponse:
    user = await workflow.forgot_password(body.email)
    return OtpSentResponse(message="OTP sent to email", user_id=user.id)


@router.put("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    workflow: AuthWorkflow = Depends(get_auth_workflow),
) -> MessageResponse:
    """Set a new password; the user has to log in again afterwards."""
    await workflow.reset_password(body.user_id, body.otp, body.new_password)
    return MessageResponse(message="Password reset successful")


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: User = Depends(get_current_user)) -> User:
    """Return profile of the currently authenticated user."""
    return current_user


@router.get("/logout", response_model=MessageResponse)
async def logout(response: Response, current_user: User = Depends(get_current_user)) -> MessageResponse:
    """Expire the session cookie.

    The token itself stays valid until its ``exp``; there is no
    server-side revocation.
    """
    response.delete_cookie(
        SESSION_COOKIE,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )
    logger.info("User %s logged out", current_user.id)
    return MessageResponse(message="User logged out successfully")
