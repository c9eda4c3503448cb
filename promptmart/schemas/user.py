"""Pydantic schemas for users and profiles."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, field_validator

# bcrypt silently truncates anything past 72 bytes
_MAX_PASSWORD_BYTES = 72
_MIN_PASSWORD_LENGTH = 6


def normalise_email(v: str) -> str:
    v = v.strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
        raise ValueError("Invalid email address")
    return v


def check_password(v: str) -> str:
    if len(v) < _MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {_MIN_PASSWORD_LENGTH} characters")
    if len(v.encode("utf-8")) > _MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must not exceed {_MAX_PASSWORD_BYTES} bytes")
    return v


def _clean_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Name must not be empty")
    if len(v) > 100:
        raise ValueError("Name must not exceed 100 characters")
    return v


class StoredFile(BaseModel):
    storage_key: str
    url: str


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    phone: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    phone: str | None
    role: str
    is_verified: bool
    profile_pic: StoredFile | None = None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class UserPublic(BaseModel):
    """Owner info embedded in prompt listings."""

    id: int
    name: str
    profile_pic: StoredFile | None = None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str | None) -> str | None:
        return None if v is None else _clean_name(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return None if v is None else normalise_email(v)
