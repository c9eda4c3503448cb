"""
Domain error taxonomy and global exception handlers.

Every error raised by the core carries its own HTTP status and a
deliberately vague client-facing message; stack traces never leave the
server.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# ── Validation (4xx) ────────────────────────────────────────────────
class ValidationError(AppError):
    status_code = 400
    default_detail = "Invalid request"


class MissingCredentials(ValidationError):
    default_detail = "Please provide an email and password"


class InvalidOrExpiredOTP(ValidationError):
    default_detail = "Invalid or expired OTP"


class RatingOutOfRange(ValidationError):
    default_detail = "Rating must be between 1 and 5"


# ── Not found (404) ─────────────────────────────────────────────────
class NotFoundError(AppError):
    status_code = 404
    default_detail = "Resource not found"


# ── Authentication (401) ────────────────────────────────────────────
class AuthError(AppError):
    status_code = 401
    default_detail = "Not authorized"


class InvalidCredentials(AuthError):
    default_detail = "Invalid credentials"


class NotVerified(AuthError):
    default_detail = "Please verify your email first"


class InvalidToken(AuthError):
    default_detail = "Could not validate credentials"


class ExpiredToken(AuthError):
    default_detail = "Session has expired"


# ── Authorisation (403) ─────────────────────────────────────────────
class ForbiddenError(AppError):
    status_code = 403
    default_detail = "Not authorized to perform this action"


# ── Conflicts ───────────────────────────────────────────────────────
class ConflictError(AppError):
    status_code = 409
    default_detail = "Conflicting update"


class DuplicateEmail(ConflictError):
    status_code = 400
    default_detail = "User already exists with this email"


class AlreadyVerified(ConflictError):
    status_code = 400
    default_detail = "User is already verified"


# ── External dependencies (500) ─────────────────────────────────────
class DependencyError(AppError):
    status_code = 500
    default_detail = "A required service is unavailable"


class DeliveryFailed(DependencyError):
    default_detail = "Email could not be sent"


class StorageError(DependencyError):
    default_detail = "File could not be stored"


# ── Handlers ────────────────────────────────────────────────────────
async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc.detail, exc_info=exc.__cause__)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=headers,
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
