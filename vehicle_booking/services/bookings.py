"""
Booking Lifecycle Manager
=========================

Creates rental and sale bookings.

Per request
-----------
1. Terms must be accepted; the owner is the authenticated caller or a fully
   described guest.
2. Under the vehicle lock, inside one transaction: re-check availability
   (rentals) or sale eligibility (sales), price the booking, insert it
   PENDING / payment PENDING.
3. A repeated ``idempotency_key`` returns the booking created the first
   time instead of creating a second one.
"""

from __future__ import annotations

import logging
from dataclasses import astuple, dataclass
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from vehicle_booking.domain.availability import AvailabilityResult, ensure_sellable
from vehicle_booking.domain.entities import (
    AuthenticatedOwner,
    GuestProfile,
    Identity,
    OwnerRef,
    Rental,
    Sale,
    resolve_owner,
)
from vehicle_booking.domain.enums import (
    PaymentMethod,
    PaymentStatus,
    RentalStatus,
    SaleStatus,
)
from vehicle_booking.domain.errors import Conflict, InvalidRequest
from vehicle_booking.domain.overlap import DateRange
from vehicle_booking.domain.pricing import PricingEngine
from vehicle_booking.infrastructure.models import (
    RentalModel,
    SaleModel,
    UserModel,
    VehicleModel,
)
from vehicle_booking.infrastructure.repositories import (
    RentalRepository,
    SaleRepository,
    UserRepository,
    VehicleRepository,
    apply_owner,
    owner_from_model,
    rental_from_model,
    sale_from_model,
    vehicle_from_model,
)
from vehicle_booking.services.availability import AvailabilityResolver
from vehicle_booking.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RentalRequest:
    vehicle_id: int
    start_date: date
    end_date: date
    agree_to_terms: bool = False
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    guest: Optional[GuestProfile] = None
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class SaleRequest:
    vehicle_id: int
    agree_to_terms: bool = False
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = None
    guest: Optional[GuestProfile] = None
    idempotency_key: Optional[str] = None


def _require_terms(agreed: bool) -> None:
    if not agreed:
        raise InvalidRequest(
            "You must agree to the terms and conditions",
            code="terms_not_accepted",
        )


async def _load_user(
    session: AsyncSession, owner: OwnerRef
) -> Optional[UserModel]:
    if isinstance(owner, AuthenticatedOwner):
        return await UserRepository(session).get_by_id(owner.user_id)
    return None


def _same_owner(model: RentalModel | SaleModel, owner: OwnerRef) -> bool:
    if isinstance(owner, AuthenticatedOwner):
        return model.user_id == owner.user_id
    if model.user_id is not None:
        return False
    stored = owner_from_model(model).profile
    return astuple(stored) == tuple(v.strip() for v in astuple(owner.profile))


def _key_reused() -> Conflict:
    return Conflict(
        "Idempotency key was already used for a different booking",
        code="idempotency_key_reused",
    )


class BookingLifecycleManager:
    def __init__(self, uow: UnitOfWork, pricing: Optional[PricingEngine] = None):
        self.uow = uow
        self.pricing = pricing or PricingEngine()

    # ── Availability (public read path) ───────────────────────────────

    async def check_availability(
        self,
        vehicle_id: int,
        start: date,
        end: date,
        exclude_rental_id: Optional[int] = None,
    ) -> AvailabilityResult:
        async with self.uow.reading() as session:
            return await AvailabilityResolver(session).resolve(
                vehicle_id, start, end, exclude_rental_id
            )

    # ── Rentals ───────────────────────────────────────────────────────

    async def create_rental(
        self, request: RentalRequest, identity: Optional[Identity] = None
    ) -> Rental:
        _require_terms(request.agree_to_terms)
        owner = resolve_owner(identity, request.guest)
        period = DateRange(request.start_date, request.end_date)

        async def work(session: AsyncSession) -> Rental:
            repo = RentalRepository(session)
            if request.idempotency_key:
                existing = await repo.get_by_idempotency_key(request.idempotency_key)
                if existing is not None:
                    return await self._existing_rental(
                        session, existing, request, owner
                    )

            resolver = AvailabilityResolver(session)
            vehicle = await resolver.load_vehicle(request.vehicle_id, for_update=True)
            availability = await resolver.evaluate(vehicle, period)
            if not availability.available:
                raise availability.as_conflict()

            rental = RentalModel(
                vehicle_id=vehicle.id,
                start_date=period.start,
                end_date=period.end,
                total_price=self.pricing.rental_price(
                    period, vehicle.daily_rate, vehicle.weekly_rate
                ),
                status=RentalStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                payment_method=request.payment_method or PaymentMethod.CARD,
                notes=request.notes,
                idempotency_key=request.idempotency_key,
            )
            apply_owner(rental, owner)
            await repo.create(rental)
            return rental_from_model(rental, vehicle, await _load_user(session, owner))

        rental = await self.uow.run(
            request.vehicle_id, work, retryable=bool(request.idempotency_key)
        )
        logger.info(
            "Rental %s created for vehicle %s (%s -> %s, total %s)",
            rental.id,
            rental.vehicle_id,
            rental.start_date,
            rental.end_date,
            rental.total_price,
        )
        return rental

    async def _existing_rental(
        self,
        session: AsyncSession,
        model: RentalModel,
        request: RentalRequest,
        owner: OwnerRef,
    ) -> Rental:
        if (
            model.vehicle_id != request.vehicle_id
            or model.start_date != request.start_date
            or model.end_date != request.end_date
            or not _same_owner(model, owner)
        ):
            raise _key_reused()
        logger.info("Idempotent replay of rental %s", model.id)
        vehicle = await VehicleRepository(session).get_by_id(model.vehicle_id)
        return rental_from_model(model, vehicle, await _load_user(session, owner))

    # ── Sales ─────────────────────────────────────────────────────────

    async def create_sale(
        self, request: SaleRequest, identity: Optional[Identity] = None
    ) -> Sale:
        _require_terms(request.agree_to_terms)
        owner = resolve_owner(identity, request.guest)

        async def work(session: AsyncSession) -> Sale:
            repo = SaleRepository(session)
            if request.idempotency_key:
                existing = await repo.get_by_idempotency_key(request.idempotency_key)
                if existing is not None:
                    return await self._existing_sale(
                        session, existing, request, owner
                    )

            vehicle = await AvailabilityResolver(session).load_vehicle(
                request.vehicle_id, for_update=True
            )
            ensure_sellable(vehicle_from_model(vehicle))

            sale = SaleModel(
                vehicle_id=vehicle.id,
                sale_price=self.pricing.sale_price(vehicle.sale_price),
                status=SaleStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                payment_method=request.payment_method or PaymentMethod.CARD,
                notes=request.notes,
                idempotency_key=request.idempotency_key,
            )
            apply_owner(sale, owner)
            await repo.create(sale)
            return sale_from_model(sale, vehicle, await _load_user(session, owner))

        sale = await self.uow.run(
            request.vehicle_id, work, retryable=bool(request.idempotency_key)
        )
        logger.info(
            "Sale %s created for vehicle %s (price %s)",
            sale.id,
            sale.vehicle_id,
            sale.sale_price,
        )
        return sale

    async def _existing_sale(
        self,
        session: AsyncSession,
        model: SaleModel,
        request: SaleRequest,
        owner: OwnerRef,
    ) -> Sale:
        if model.vehicle_id != request.vehicle_id or not _same_owner(model, owner):
            raise _key_reused()
        logger.info("Idempotent replay of sale %s", model.id)
        vehicle: Optional[VehicleModel] = await VehicleRepository(session).get_by_id(
            model.vehicle_id
        )
        return sale_from_model(model, vehicle, await _load_user(session, owner))
