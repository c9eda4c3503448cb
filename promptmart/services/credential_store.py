"""
Credential store — the persistence contract the auth workflow relies on.

Email uniqueness is enforced by the ``users.email`` unique index; a
violation on ``create`` or ``update_fields`` surfaces as ``DuplicateEmail``
whatever the race that produced it.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from promptmart.core.exceptions import DuplicateEmail, NotFoundError
from promptmart.models.user import User

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    async def find_by_email(self, email: str) -> User | None:
        ...

    async def find_by_id(self, user_id: int) -> User | None:
        ...

    async def create(self, **fields: Any) -> User:
        ...

    async def update_fields(self, user_id: int, **fields: Any) -> User:
        ...

    async def delete_by_id(self, user_id: int) -> None:
        ...


class SqlCredentialStore:
    """``CredentialStore`` backed by an async SQLAlchemy session.

    Each write commits immediately; last write wins on the touched columns.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: int) -> User | None:
        return await self.db.get(User, user_id)

    async def create(self, **fields: Any) -> User:
        user = User(**fields)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateEmail() from exc
        await self.db.refresh(user)
        return user

    async def update_fields(self, user_id: int, **fields: Any) -> User:
        user = await self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        for field, value in fields.items():
            setattr(user, field, value)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateEmail() from exc
        await self.db.refresh(user)
        return user

    async def delete_by_id(self, user_id: int) -> None:
        await self.db.execute(delete(User).where(User.id == user_id))
        await self.db.commit()
        logger.info("Deleted user %s", user_id)
