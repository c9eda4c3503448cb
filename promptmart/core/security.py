"""
Password hashing (bcrypt) and signed session tokens (JWT).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from promptmart.core.config import settings
from promptmart.core.exceptions import ExpiredToken, InvalidToken

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def dummy_verify() -> None:
    """Burn the same time as a real check when there is no hash to compare."""
    pwd_context.dummy_verify()


# ── Session tokens ──────────────────────────────────────────────────
_TOKEN_TYPE = "session"


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionClaims:
    user_id: int
    role: str


class SessionIssuer:
    """Mints and validates stateless HS256 session tokens.

    Tokens cannot be revoked before ``exp``: logout only replaces the
    client's cookie.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime: timedelta = timedelta(days=7)):
        self._secret = secret
        self._algorithm = algorithm
        self.lifetime = lifetime

    def issue(self, user_id: int, role: str, now: datetime | None = None) -> IssuedSession:
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + self.lifetime
        token = jwt.encode(
            {
                "sub": str(user_id),
                "role": role,
                "iat": int(issued_at.timestamp()),
                "exp": int(expires_at.timestamp()),
                "type": _TOKEN_TYPE,
            },
            self._secret,
            algorithm=self._algorithm,
        )
        return IssuedSession(token=token, expires_at=expires_at)

    def validate(self, token: str, now: datetime | None = None) -> SessionClaims:
        """Return the claims of a well-signed, unexpired session token.

        Expiry is checked here against *now* rather than by jose so the
        caller controls the clock.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError as exc:
            raise InvalidToken() from exc

        if payload.get("type") != _TOKEN_TYPE:
            raise InvalidToken()
        try:
            user_id = int(payload["sub"])
            role = str(payload["role"])
            exp = int(payload["exp"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken() from exc

        current = now or datetime.now(timezone.utc)
        if current.timestamp() > exp:
            raise ExpiredToken()
        return SessionClaims(user_id=user_id, role=role)
