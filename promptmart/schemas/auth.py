"""Pydantic schemas for the auth flows and session tokens."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

from promptmart.schemas.user import UserRead, check_password, normalise_email


class LoginRequest(BaseModel):
    # Optional so a missing field surfaces as MissingCredentials, not a 422
    email: str | None = None
    password: str | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return v.strip().lower() if v else v


class VerifyOtpRequest(BaseModel):
    user_id: int
    otp: str


class ResendOtpRequest(BaseModel):
    user_id: int


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)


class ResetPasswordRequest(BaseModel):
    user_id: int
    otp: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)


class SessionResponse(BaseModel):
    success: bool = True
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserRead


class OtpSentResponse(BaseModel):
    success: bool = True
    message: str
    user_id: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str
