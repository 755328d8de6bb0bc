"""
Availability rules for renting and selling a vehicle.

Pure functions over already-loaded data so that the same rules back the
single-vehicle availability check, the locked write path and the vehicle
listing annotation.

Rental precedence
-----------------
1. Vehicle must be rental-eligible (active, not SOLD, kind allows rental).
2. Any blocking sale pre-empts every rental, whatever the dates.
3. Blocking rentals must not overlap the requested half-open range.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from .entities import RentalInterval, Vehicle
from .errors import Conflict
from .overlap import DateRange, find_overlaps


class AvailabilityReason(str, enum.Enum):
    VEHICLE_NOT_RENTABLE = "vehicle_not_rentable"
    SALE_PENDING = "sale_pending"
    DATES_UNAVAILABLE = "dates_unavailable"


REASON_MESSAGES = {
    AvailabilityReason.VEHICLE_NOT_RENTABLE: "Vehicle is not available for rental",
    AvailabilityReason.SALE_PENDING: (
        "Vehicle is not available for rental (pending or confirmed sale)"
    ),
    AvailabilityReason.DATES_UNAVAILABLE: (
        "Vehicle is already booked for the selected dates"
    ),
}


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    reason: Optional[AvailabilityReason] = None
    conflicts: tuple[RentalInterval, ...] = ()
    blocking_sale_ids: tuple[int, ...] = ()

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES.get(self.reason) if self.reason else None

    def as_conflict(self) -> Conflict:
        """Turn a negative result into the error surfaced to the caller."""
        return Conflict(
            self.message or "Vehicle is not available",
            code=self.reason.value if self.reason else None,
            details={
                "conflicting_rentals": [
                    {
                        "id": c.id,
                        "start_date": c.start_date.isoformat(),
                        "end_date": c.end_date.isoformat(),
                    }
                    for c in self.conflicts
                ],
                "blocking_sale_ids": list(self.blocking_sale_ids),
            },
        )


AVAILABLE = AvailabilityResult(available=True)


def evaluate_rental_availability(
    vehicle: Vehicle,
    period: DateRange,
    blocking_rentals: Iterable[RentalInterval],
    blocking_sale_ids: Iterable[int],
    exclude_rental_id: Optional[int] = None,
) -> AvailabilityResult:
    if not vehicle.rentable:
        return AvailabilityResult(
            available=False, reason=AvailabilityReason.VEHICLE_NOT_RENTABLE
        )

    sale_ids = tuple(blocking_sale_ids)
    if sale_ids:
        return AvailabilityResult(
            available=False,
            reason=AvailabilityReason.SALE_PENDING,
            blocking_sale_ids=sale_ids,
        )

    candidates = [r for r in blocking_rentals if r.id != exclude_rental_id]
    check = find_overlaps(period, candidates, lambda r: (r.start_date, r.end_date))
    if check.conflict:
        return AvailabilityResult(
            available=False,
            reason=AvailabilityReason.DATES_UNAVAILABLE,
            conflicts=check.overlapping,
        )
    return AVAILABLE


def ensure_sellable(vehicle: Vehicle) -> None:
    """Raise ``Conflict`` unless a sale may be created for *vehicle*."""
    if not vehicle.sellable:
        raise Conflict(
            "Vehicle is not available for sale",
            code="vehicle_not_for_sale",
            details={"vehicle_status": vehicle.status.value},
        )
    if vehicle.sale_price is None:
        raise Conflict(
            "Vehicle does not have a sale price", code="vehicle_not_priced"
        )
