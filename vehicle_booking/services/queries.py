"""
Read-side booking queries.

Customer views (own bookings), admin views (all bookings, status filter),
the public vehicle schedule and the vehicle listing with availability.
None of these take the vehicle lock: slightly stale reads are acceptable
here, unlike on the booking write path.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from vehicle_booking.domain.availability import (
    AvailabilityResult,
    evaluate_rental_availability,
)
from vehicle_booking.domain.entities import Identity, Rental, Sale, Vehicle
from vehicle_booking.domain.enums import RentalStatus, SaleStatus
from vehicle_booking.domain.errors import Forbidden, NotFound
from vehicle_booking.domain.listing import (
    Page,
    PageRequest,
    Pagination,
    VehicleListingQuery,
)
from vehicle_booking.infrastructure.models import RentalModel, SaleModel
from vehicle_booking.infrastructure.repositories import (
    RentalRepository,
    SaleRepository,
    UserRepository,
    VehicleRepository,
    rental_from_model,
    sale_from_model,
    vehicle_from_model,
)

Booking = Union[Rental, Sale]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class VehicleListing:
    vehicle: Vehicle
    availability: Optional[AvailabilityResult] = None


def _newest_first(booking: Booking):
    created = booking.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


class BookingQueries:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.vehicles = VehicleRepository(session)
        self.rentals = RentalRepository(session)
        self.sales = SaleRepository(session)
        self.users = UserRepository(session)

    # ── Hydration ─────────────────────────────────────────────────────

    async def _hydrate_rentals(self, models: list[RentalModel]) -> list[Rental]:
        vehicles = await self.vehicles.get_many(m.vehicle_id for m in models)
        users = await self.users.get_many(m.user_id for m in models)
        return [
            rental_from_model(m, vehicles.get(m.vehicle_id), users.get(m.user_id))
            for m in models
        ]

    async def _hydrate_sales(self, models: list[SaleModel]) -> list[Sale]:
        vehicles = await self.vehicles.get_many(m.vehicle_id for m in models)
        users = await self.users.get_many(m.user_id for m in models)
        return [
            sale_from_model(m, vehicles.get(m.vehicle_id), users.get(m.user_id))
            for m in models
        ]

    @staticmethod
    def _check_access(booking: Booking, identity: Identity, label: str) -> None:
        if not identity.is_admin and not booking.is_owned_by(identity.user_id):
            raise Forbidden(
                f"You do not have access to this {label}", code="not_owner"
            )

    # ── Single bookings ───────────────────────────────────────────────

    async def get_rental(self, rental_id: int, identity: Identity) -> Rental:
        model = await self.rentals.get_by_id(rental_id)
        if model is None:
            raise NotFound("Rental not found", code="rental_not_found")
        (rental,) = await self._hydrate_rentals([model])
        self._check_access(rental, identity, "rental")
        return rental

    async def get_sale(self, sale_id: int, identity: Identity) -> Sale:
        model = await self.sales.get_by_id(sale_id)
        if model is None:
            raise NotFound("Sale not found", code="sale_not_found")
        (sale,) = await self._hydrate_sales([model])
        self._check_access(sale, identity, "sale")
        return sale

    # ── Customer ──────────────────────────────────────────────────────

    async def list_user_rentals(self, user_id: int, page: PageRequest) -> Page[Rental]:
        models, total = await self.rentals.list_by_user(user_id, page)
        return Page(
            await self._hydrate_rentals(models),
            Pagination(page.page, page.limit, total),
        )

    async def list_user_sales(self, user_id: int, page: PageRequest) -> Page[Sale]:
        models, total = await self.sales.list_by_user(user_id, page)
        return Page(
            await self._hydrate_sales(models),
            Pagination(page.page, page.limit, total),
        )

    async def list_user_bookings(self, user_id: int) -> list[Booking]:
        rentals, _ = await self.rentals.list_by_user(user_id)
        sales, _ = await self.sales.list_by_user(user_id)
        return self._merge(
            await self._hydrate_rentals(rentals), await self._hydrate_sales(sales)
        )

    # ── Admin ─────────────────────────────────────────────────────────

    async def list_rentals(
        self, page: PageRequest, status: Optional[RentalStatus] = None
    ) -> Page[Rental]:
        models, total = await self.rentals.list_all(page, status)
        return Page(
            await self._hydrate_rentals(models),
            Pagination(page.page, page.limit, total),
        )

    async def list_sales(
        self, page: PageRequest, status: Optional[SaleStatus] = None
    ) -> Page[Sale]:
        models, total = await self.sales.list_all(page, status)
        return Page(
            await self._hydrate_sales(models),
            Pagination(page.page, page.limit, total),
        )

    async def list_all_bookings(self) -> list[Booking]:
        rentals, _ = await self.rentals.list_all()
        sales, _ = await self.sales.list_all()
        return self._merge(
            await self._hydrate_rentals(rentals), await self._hydrate_sales(sales)
        )

    @staticmethod
    def _merge(rentals: list[Rental], sales: list[Sale]) -> list[Booking]:
        return sorted([*rentals, *sales], key=_newest_first, reverse=True)

    # ── Public ────────────────────────────────────────────────────────

    async def list_vehicle_rentals(self, vehicle_id: int) -> list[Rental]:
        if await self.vehicles.get_by_id(vehicle_id) is None:
            raise NotFound("Vehicle not found", code="vehicle_not_found")
        return await self._hydrate_rentals(
            await self.rentals.list_by_vehicle(vehicle_id)
        )

    async def list_vehicles(self, query: VehicleListingQuery) -> Page[VehicleListing]:
        period = query.period
        models, total = await self.vehicles.search(query)
        pagination = Pagination(query.page.page, query.page.limit, total)
        vehicles = [vehicle_from_model(m) for m in models]
        if period is None:
            return Page([VehicleListing(v) for v in vehicles], pagination)

        ids = [v.id for v in vehicles]
        rentals = await self.rentals.blocking_intervals_for(ids, period)
        sales = await self.sales.blocking_sale_ids_for(ids)
        return Page(
            [
                VehicleListing(
                    v,
                    evaluate_rental_availability(
                        v, period, rentals.get(v.id, []), sales.get(v.id, [])
                    ),
                )
                for v in vehicles
            ],
            pagination,
        )
