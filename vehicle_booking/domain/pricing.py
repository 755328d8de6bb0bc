"""
Rental Pricing Engine  (Strategy Pattern)
=========================================

Formula
-------
days  = end_date - start_date   (calendar days, half-open range)

* **Weekly tier** (days >= 7 and a weekly rate exists):
  ``floor(days / 7) x weekly_rate + (days % 7) x daily_rate``
* **Daily** otherwise: ``days x daily_rate``

All amounts are ``Decimal`` quantized to cents (ROUND_HALF_UP); binary
floats never touch money.  Sales are priced at the vehicle's ``sale_price``
snapshotted when the booking is created.

Complexity: O(1) per price calculation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from .errors import InvalidRequest
from .overlap import DateRange

CENT = Decimal("0.01")
DAYS_PER_WEEK = 7

Money = Union[Decimal, int, str]


def to_money(value: Money) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(self, days: int) -> Decimal: ...


class DailyPricing(PricingStrategy):
    def __init__(self, daily_rate: Money):
        self.daily_rate = to_money(daily_rate)

    def calculate(self, days: int) -> Decimal:
        return to_money(self.daily_rate * days)


class WeeklyTierPricing(PricingStrategy):
    """Whole weeks at the weekly rate, leftover days at the daily rate."""

    def __init__(self, daily_rate: Money, weekly_rate: Money):
        self.daily_rate = to_money(daily_rate)
        self.weekly_rate = to_money(weekly_rate)

    def calculate(self, days: int) -> Decimal:
        weeks, remaining = divmod(days, DAYS_PER_WEEK)
        return to_money(weeks * self.weekly_rate + remaining * self.daily_rate)


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the booking lifecycle manager."""

    @staticmethod
    def strategy_for(
        days: int, daily_rate: Optional[Money], weekly_rate: Optional[Money]
    ) -> PricingStrategy:
        if daily_rate is None:
            raise InvalidRequest(
                "Vehicle does not have a daily rate", code="vehicle_not_priced"
            )
        if days >= DAYS_PER_WEEK and weekly_rate:
            return WeeklyTierPricing(daily_rate, weekly_rate)
        return DailyPricing(daily_rate)

    def rental_price(
        self,
        period: DateRange,
        daily_rate: Optional[Money],
        weekly_rate: Optional[Money] = None,
    ) -> Decimal:
        days = period.days
        return self.strategy_for(days, daily_rate, weekly_rate).calculate(days)

    @staticmethod
    def sale_price(sale_price: Optional[Money]) -> Decimal:
        if sale_price is None:
            raise InvalidRequest(
                "Vehicle does not have a sale price", code="vehicle_not_priced"
            )
        return to_money(sale_price)
