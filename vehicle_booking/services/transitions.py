"""
Status Transition Engine
========================

Admin-driven status changes and owner-driven cancellations of existing
bookings.

* Every change is validated against ``RENTAL_TRANSITIONS`` /
  ``SALE_TRANSITIONS`` before anything is written.
* The booking update and the vehicle-status cascade
  (``RENTAL_VEHICLE_CASCADE`` / ``SALE_VEHICLE_CASCADE``) are written in the
  same transaction, under the vehicle lock.
* A SOLD vehicle is never handed back to the rental flow: confirming a rental
  on it is rejected, and rental completion/cancellation leaves it SOLD.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from vehicle_booking.domain.entities import Rental, Sale
from vehicle_booking.domain.enums import (
    RENTAL_VEHICLE_CASCADE,
    SALE_VEHICLE_CASCADE,
    BookingType,
    PaymentStatus,
    RentalStatus,
    SaleStatus,
    VehicleStatus,
)
from vehicle_booking.domain.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    InvalidStateTransition,
    NotFound,
)
from vehicle_booking.infrastructure.models import RentalModel, SaleModel
from vehicle_booking.infrastructure.repositories import (
    RentalRepository,
    SaleRepository,
    UserRepository,
    VehicleRepository,
    rental_from_model,
    sale_from_model,
)
from vehicle_booking.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

ADMIN_CANCEL_REASON = "Admin cancelled"
MAX_REASON_LENGTH = 500


@dataclass(frozen=True)
class _BookingKind:
    booking_type: BookingType
    label: str
    repository: type
    from_model: Callable
    cascade: dict


RENTALS = _BookingKind(
    BookingType.RENTAL, "Rental", RentalRepository, rental_from_model, RENTAL_VEHICLE_CASCADE
)
SALES = _BookingKind(
    BookingType.SALE, "Sale", SaleRepository, sale_from_model, SALE_VEHICLE_CASCADE
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _write_back(model: Union[RentalModel, SaleModel], booking: Union[Rental, Sale]) -> None:
    model.status = booking.status
    model.payment_status = booking.payment_status
    model.cancellation_reason = booking.cancellation_reason
    model.cancelled_at = booking.cancelled_at
    model.cancelled_by = booking.cancelled_by


def _clean_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidRequest(
            "A cancellation reason is required", code="missing_cancellation_reason"
        )
    if len(reason) > MAX_REASON_LENGTH:
        raise InvalidRequest(
            f"Cancellation reason must not exceed {MAX_REASON_LENGTH} characters",
            code="cancellation_reason_too_long",
        )
    return reason


class StatusTransitionEngine:
    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = _utcnow):
        self.uow = uow
        self.clock = clock

    # ── Admin ─────────────────────────────────────────────────────────

    async def set_rental_status(
        self,
        rental_id: int,
        status: RentalStatus,
        payment_status: Optional[PaymentStatus] = None,
        cancellation_reason: Optional[str] = None,
        *,
        actor_id: int,
    ) -> Rental:
        return await self._set_status(
            RENTALS, rental_id, status, payment_status, cancellation_reason, actor_id
        )

    async def set_sale_status(
        self,
        sale_id: int,
        status: SaleStatus,
        payment_status: Optional[PaymentStatus] = None,
        cancellation_reason: Optional[str] = None,
        *,
        actor_id: int,
    ) -> Sale:
        return await self._set_status(
            SALES, sale_id, status, payment_status, cancellation_reason, actor_id
        )

    # ── Owner ─────────────────────────────────────────────────────────

    async def cancel_rental(self, rental_id: int, owner_id: int, reason: str) -> Rental:
        return await self._cancel_by_owner(RENTALS, rental_id, owner_id, reason)

    async def cancel_sale(self, sale_id: int, owner_id: int, reason: str) -> Sale:
        return await self._cancel_by_owner(SALES, sale_id, owner_id, reason)

    # ── Internals ─────────────────────────────────────────────────────

    def _not_found(self, kind: _BookingKind) -> NotFound:
        return NotFound(
            f"{kind.label} not found", code=f"{kind.booking_type.value}_not_found"
        )

    async def _vehicle_of(self, kind: _BookingKind, booking_id: int) -> int:
        async with self.uow.reading() as session:
            model = await kind.repository(session).get_by_id(booking_id)
        if model is None:
            raise self._not_found(kind)
        return model.vehicle_id

    async def _set_status(
        self,
        kind: _BookingKind,
        booking_id: int,
        status,
        payment_status: Optional[PaymentStatus],
        cancellation_reason: Optional[str],
        actor_id: int,
    ):
        vehicle_id = await self._vehicle_of(kind, booking_id)

        async def work(session: AsyncSession):
            vehicle = await VehicleRepository(session).get_for_update(vehicle_id)
            model = await kind.repository(session).get_for_update(booking_id)
            if model is None:
                raise self._not_found(kind)

            booking = kind.from_model(model)
            previous = booking.status
            if status == previous:
                # Re-applying the current status only updates payment bookkeeping.
                if not booking.transitions.get(previous):
                    raise InvalidStateTransition(
                        f"{kind.label} is already {previous.value}",
                        details={"current_status": previous.value},
                    )
            elif status == booking.cancelled_status:
                booking.cancel(
                    (cancellation_reason or "").strip() or ADMIN_CANCEL_REASON,
                    actor_id,
                    self.clock(),
                )
            else:
                booking.transition_to(status)

            if payment_status is not None:
                booking.payment_status = payment_status

            target = kind.cascade.get(status) if status != previous else None
            if (
                kind.booking_type == BookingType.RENTAL
                and vehicle is not None
                and vehicle.status == VehicleStatus.SOLD
            ):
                if status == RentalStatus.CONFIRMED and previous != status:
                    raise Conflict(
                        "Vehicle has been sold and cannot be rented",
                        code="vehicle_sold",
                    )
                target = None

            _write_back(model, booking)
            if target is not None and vehicle is not None:
                vehicle.status = target
            await session.flush()

            user = (
                await UserRepository(session).get_by_id(model.user_id)
                if model.user_id is not None
                else None
            )
            return kind.from_model(model, vehicle, user), previous, target

        booking, previous, target = await self.uow.run(vehicle_id, work, retryable=True)
        logger.info(
            "%s %s: %s -> %s by admin %s (vehicle %s -> %s)",
            kind.label,
            booking_id,
            previous.value,
            booking.status.value,
            actor_id,
            vehicle_id,
            target.value if target else "unchanged",
        )
        return booking

    async def _cancel_by_owner(
        self, kind: _BookingKind, booking_id: int, owner_id: int, reason: str
    ):
        reason = _clean_reason(reason)
        vehicle_id = await self._vehicle_of(kind, booking_id)

        async def work(session: AsyncSession):
            model = await kind.repository(session).get_for_update(booking_id)
            if model is None:
                raise self._not_found(kind)

            booking = kind.from_model(model)
            if not booking.is_owned_by(owner_id):
                raise Forbidden(
                    "You can only cancel your own bookings", code="not_owner"
                )
            if not booking.is_pending:
                raise InvalidRequest(
                    "Cannot cancel booking. Only pending bookings can be "
                    "cancelled by customers.",
                    code="not_cancellable",
                    details={"current_status": booking.status.value},
                )
            # A pending booking never claimed the vehicle, so no cascade.
            booking.cancel(reason, owner_id, self.clock())
            _write_back(model, booking)
            await session.flush()

            vehicle = await VehicleRepository(session).get_by_id(model.vehicle_id)
            user = await UserRepository(session).get_by_id(owner_id)
            return kind.from_model(model, vehicle, user)

        booking = await self.uow.run(vehicle_id, work, retryable=True)
        logger.info("%s %s cancelled by owner %s", kind.label, booking_id, owner_id)
        return booking
