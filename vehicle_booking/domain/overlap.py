"""
Interval overlap detection on half-open date ranges.

Two ranges ``[s1, e1)`` and ``[s2, e2)`` overlap iff ``s1 < e2 and e1 > s2``.
Touching ranges (``e1 == s2``) do not overlap, so back-to-back bookings
are allowed.

Complexity: O(n) in the number of existing intervals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Generic, Iterable, TypeVar

from .errors import InvalidRequest

T = TypeVar("T")


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidRequest(
                "End date must be after start date",
                code="invalid_date_range",
                details={
                    "start_date": self.start.isoformat(),
                    "end_date": self.end.isoformat(),
                },
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def overlaps(self, start: date, end: date) -> bool:
        return self.start < end and self.end > start


@dataclass(frozen=True)
class OverlapCheck(Generic[T]):
    conflict: bool
    overlapping: tuple[T, ...]


def find_overlaps(
    candidate: DateRange,
    existing: Iterable[T],
    bounds: Callable[[T], tuple[date, date]],
) -> OverlapCheck[T]:
    """Return the items of *existing* whose ``bounds`` overlap *candidate*."""
    hits = tuple(item for item in existing if candidate.overlaps(*bounds(item)))
    return OverlapCheck(conflict=bool(hits), overlapping=hits)
