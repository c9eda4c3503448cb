"""
Rating submissions without lost updates.

Two layers of protection around the read-modify-write of a prompt's
``(rating_total, rating_average)`` pair:

1. An in-process ``asyncio.Lock`` per prompt id serialises submissions
   handled by this worker.
2. The write is a compare-and-swap on the previous pair, retried a
   bounded number of times, which covers other worker processes.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from promptmart.core.exceptions import ConflictError, NotFoundError
from promptmart.core.rating import RatingSummary, submit_rating
from promptmart.models.prompt import Prompt

logger = logging.getLogger(__name__)


class RatingStore(Protocol):
    async def get_summary(self, prompt_id: int) -> RatingSummary | None:
        ...

    async def compare_and_set(self, prompt_id: int, expected: RatingSummary, new: RatingSummary) -> bool:
        ...


class SqlRatingStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_summary(self, prompt_id: int) -> RatingSummary | None:
        result = await self.db.execute(
            select(Prompt.rating_total, Prompt.rating_average).where(Prompt.id == prompt_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return RatingSummary(total_ratings=row.rating_total, average=row.rating_average)

    async def compare_and_set(self, prompt_id: int, expected: RatingSummary, new: RatingSummary) -> bool:
        result = await self.db.execute(
            update(Prompt)
            .where(
                Prompt.id == prompt_id,
                Prompt.rating_total == expected.total_ratings,
                Prompt.rating_average == expected.average,
            )
            .values(rating_total=new.total_ratings, rating_average=new.average)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1


class KeyedLocks:
    """One ``asyncio.Lock`` per key, dropped once nobody holds a reference."""

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[object, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, key: object) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


# Shared by every request handled in this process
rating_locks = KeyedLocks()


class RatingService:
    def __init__(self, store: RatingStore, locks: KeyedLocks, max_retries: int = 10) -> None:
        self.store = store
        self.locks = locks
        self.max_retries = max_retries

    async def submit(self, prompt_id: int, value: float) -> RatingSummary:
        # Reject bad input before touching the store
        submit_rating(RatingSummary(), value)

        async with self.locks.get(prompt_id):
            for attempt in range(1, self.max_retries + 1):
                current = await self.store.get_summary(prompt_id)
                if current is None:
                    raise NotFoundError("Prompt not found")
                new = submit_rating(current, value)
                if await self.store.compare_and_set(prompt_id, current, new):
                    return new
                logger.info("Rating CAS miss on prompt %s (attempt %d)", prompt_id, attempt)

        raise ConflictError("Rating could not be recorded, please retry")
