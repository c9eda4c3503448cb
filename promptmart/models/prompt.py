"""
Prompt model — the sellable listing.

Images are stored as an ordered JSON list of ``{"storage_key", "url"}``
objects; the rating summary is a (count, mean) column pair updated only
through the compare-and-swap in ``services.ratings``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (JSON, CheckConstraint, Column, DateTime, Float,
                        ForeignKey, Index, Integer, String, Text)
from sqlalchemy.orm import relationship

from promptmart.core.rating import RatingSummary
from promptmart.db.base import Base

PROMPT_STATUSES = ("active", "inactive", "draft")


class Prompt(Base):
    __tablename__ = "prompts"
    __table_args__ = (
        CheckConstraint(
            "offer_price IS NULL OR offer_price <= regular_price",
            name="ck_prompts_offer_le_regular",
        ),
        CheckConstraint("regular_price >= 0", name="ck_prompts_regular_non_negative"),
        Index("ix_prompts_status_created", "status", "created_at"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    description: str = Column(Text, nullable=False)  # type: ignore[assignment]
    images: list[dict] = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="active")  # type: ignore[assignment]
    regular_price: float = Column(Float, nullable=False)  # type: ignore[assignment]
    offer_price: float | None = Column(Float, nullable=True)  # type: ignore[assignment]
    rating_total: int = Column(Integer, nullable=False, default=0, server_default="0")  # type: ignore[assignment]
    rating_average: float = Column(Float, nullable=False, default=0.0, server_default="0")  # type: ignore[assignment]
    owner_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    owner = relationship("User", lazy="selectin")

    @property
    def price(self) -> dict:
        return {"regular": self.regular_price, "offer": self.offer_price}

    @property
    def rating(self) -> RatingSummary:
        return RatingSummary(total_ratings=self.rating_total or 0, average=self.rating_average or 0.0)
