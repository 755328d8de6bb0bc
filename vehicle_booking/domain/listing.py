"""Structured query objects for the read side (vehicle listing, pagination)."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Generic, Optional, TypeVar

from .enums import VehicleKind
from .overlap import DateRange

T = TypeVar("T")


class VehicleSort(str, enum.Enum):
    NEWEST = "newest"
    PRICE = "price"
    YEAR = "year"
    NAME = "name"


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "page", max(1, self.page))
        object.__setattr__(self, "limit", max(1, self.limit))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    pagination: Pagination


@dataclass(frozen=True)
class VehicleListingQuery:
    """Filters for the public vehicle listing.

    When both dates are given, vehicles with an overlapping blocking rental
    or any blocking sale are left out unless ``available_only`` is False,
    and every returned vehicle is annotated with its availability.
    """

    kind: Optional[VehicleKind] = None
    active: Optional[bool] = True
    search: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    available_only: bool = True
    sort: VehicleSort = VehicleSort.NEWEST
    page: PageRequest = field(default_factory=PageRequest)

    @property
    def period(self) -> Optional[DateRange]:
        if self.start_date is None or self.end_date is None:
            return None
        return DateRange(self.start_date, self.end_date)
