"""
Availability Resolver
=====================

Answers "can this vehicle be rented for ``[start, end)``?" by loading the
vehicle, its blocking rentals and its blocking sales and applying the rules
in ``domain.availability``.

Read-only.  The public check runs it on a plain session; the booking write
path runs it inside the locked transaction with ``for_update=True``.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from vehicle_booking.domain.availability import (
    AvailabilityResult,
    evaluate_rental_availability,
)
from vehicle_booking.domain.errors import NotFound
from vehicle_booking.domain.overlap import DateRange
from vehicle_booking.infrastructure.models import VehicleModel
from vehicle_booking.infrastructure.repositories import (
    RentalRepository,
    SaleRepository,
    VehicleRepository,
    vehicle_from_model,
)


class AvailabilityResolver:
    def __init__(self, session: AsyncSession):
        self.vehicles = VehicleRepository(session)
        self.rentals = RentalRepository(session)
        self.sales = SaleRepository(session)

    async def load_vehicle(
        self, vehicle_id: int, *, for_update: bool = False
    ) -> VehicleModel:
        if for_update:
            vehicle = await self.vehicles.get_for_update(vehicle_id)
        else:
            vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise NotFound("Vehicle not found", code="vehicle_not_found")
        return vehicle

    async def evaluate(
        self,
        vehicle: VehicleModel,
        period: DateRange,
        exclude_rental_id: Optional[int] = None,
    ) -> AvailabilityResult:
        rentals = await self.rentals.blocking_intervals(vehicle.id, period)
        sale_ids = await self.sales.blocking_sale_ids(vehicle.id)
        return evaluate_rental_availability(
            vehicle_from_model(vehicle),
            period,
            rentals,
            sale_ids,
            exclude_rental_id=exclude_rental_id,
        )

    async def resolve(
        self,
        vehicle_id: int,
        start: date,
        end: date,
        exclude_rental_id: Optional[int] = None,
    ) -> AvailabilityResult:
        period = DateRange(start, end)
        vehicle = await self.load_vehicle(vehicle_id)
        return await self.evaluate(vehicle, period, exclude_rental_id)
