"""Running mean of prompt ratings."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from promptmart.core.exceptions import RatingOutOfRange

MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class RatingSummary:
    total_ratings: int = 0
    average: float = 0.0


def round1(value: float) -> float:
    """Round to one decimal place, halves away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def submit_rating(summary: RatingSummary, value: float) -> RatingSummary:
    """Fold one rating into *summary* using only the previous mean and count."""
    if value is None or isinstance(value, bool) or not MIN_RATING <= value <= MAX_RATING:
        raise RatingOutOfRange()
    new_total = summary.total_ratings + 1
    new_average = (summary.average * summary.total_ratings + value) / new_total
    return RatingSummary(total_ratings=new_total, average=round1(new_average))
