"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Rental`` / ``Sale``: ``transition_to`` enforces the
  lifecycle tables in ``enums`` before any write.
- **Tagged union** ``OwnerRef``: a booking belongs either to an
  ``AuthenticatedOwner`` or to a ``GuestOwner`` carrying contact details.
  There is no reserved "guest user" identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Optional, Union

from .enums import (
    RENTAL_TRANSITIONS,
    SALE_TRANSITIONS,
    BookingType,
    PaymentMethod,
    PaymentStatus,
    RentalStatus,
    SaleStatus,
    UserRole,
    VehicleKind,
    VehicleStatus,
)
from .errors import InvalidRequest, InvalidStateTransition


# ── Identity ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as resolved by the upstream auth layer."""

    user_id: int
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class GuestProfile:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    license_number: str = ""

    def missing_fields(self) -> list[str]:
        return [
            f.name
            for f in fields(self)
            if not (getattr(self, f.name) or "").strip()
        ]


@dataclass(frozen=True)
class AuthenticatedOwner:
    user_id: int


@dataclass(frozen=True)
class GuestOwner:
    profile: GuestProfile


OwnerRef = Union[AuthenticatedOwner, GuestOwner]


def resolve_owner(
    identity: Optional[Identity], guest: Optional[GuestProfile]
) -> OwnerRef:
    """Pick the booking owner; an authenticated caller always wins."""
    if identity is not None:
        return AuthenticatedOwner(identity.user_id)
    if guest is None:
        raise InvalidRequest(
            "Either user authentication or guest information is required",
            code="missing_identity",
        )
    missing = guest.missing_fields()
    if missing:
        raise InvalidRequest(
            "All guest information fields are required",
            code="incomplete_guest_info",
            details={"missing_fields": missing},
        )
    return GuestOwner(guest)


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class VehicleSummary:
    id: int
    make: str
    model: str
    year: int
    daily_rate: Optional[Decimal] = None
    weekly_rate: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None


@dataclass(frozen=True)
class OwnerSummary:
    """What reports show about a booking's owner.

    Guest bookings expose the guest's own contact details.
    """

    is_guest: bool
    user_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    license_number: Optional[str] = None


@dataclass(frozen=True)
class RentalInterval:
    """A blocking rental as seen by the overlap checker."""

    id: int
    start_date: date
    end_date: date
    status: RentalStatus


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Vehicle:
    id: Optional[int] = None
    make: str = ""
    model: str = ""
    year: int = 0
    kind: VehicleKind = VehicleKind.RENTAL_ONLY
    status: VehicleStatus = VehicleStatus.AVAILABLE
    is_active: bool = True
    daily_rate: Optional[Decimal] = None
    weekly_rate: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    @property
    def rentable(self) -> bool:
        return (
            self.is_active
            and self.status != VehicleStatus.SOLD
            and self.kind.rentable
        )

    @property
    def sellable(self) -> bool:
        return (
            self.is_active
            and self.status == VehicleStatus.AVAILABLE
            and self.kind.sellable
        )

    def summary(self) -> VehicleSummary:
        return VehicleSummary(
            id=self.id or 0,
            make=self.make,
            model=self.model,
            year=self.year,
            daily_rate=self.daily_rate,
            weekly_rate=self.weekly_rate,
            sale_price=self.sale_price,
        )


@dataclass
class _Reservation:
    transitions: ClassVar[dict] = {}
    cancelled_status: ClassVar[Union[RentalStatus, SaleStatus, None]] = None
    pending_status: ClassVar[Union[RentalStatus, SaleStatus, None]] = None

    id: Optional[int] = None
    vehicle_id: int = 0
    owner: Optional[OwnerRef] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.CARD
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    vehicle: Optional[VehicleSummary] = None
    owner_summary: Optional[OwnerSummary] = None

    def is_owned_by(self, user_id: int) -> bool:
        return (
            isinstance(self.owner, AuthenticatedOwner)
            and self.owner.user_id == user_id
        )

    def transition_to(self, new_status) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = self.transitions.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}",
                details={
                    "current_status": self.status.value,
                    "requested_status": new_status.value,
                },
            )
        self.status = new_status

    def cancel(self, reason: str, actor_id: int, at: datetime) -> None:
        self.transition_to(self.cancelled_status)
        self.cancellation_reason = reason
        self.cancelled_at = at
        self.cancelled_by = actor_id

    @property
    def is_pending(self) -> bool:
        return self.status == self.pending_status


@dataclass
class Rental(_Reservation):
    transitions: ClassVar[dict] = RENTAL_TRANSITIONS
    cancelled_status: ClassVar[RentalStatus] = RentalStatus.CANCELLED
    pending_status: ClassVar[RentalStatus] = RentalStatus.PENDING
    booking_type: ClassVar[BookingType] = BookingType.RENTAL

    status: RentalStatus = RentalStatus.PENDING
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_price: Decimal = field(default_factory=lambda: Decimal("0.00"))


@dataclass
class Sale(_Reservation):
    transitions: ClassVar[dict] = SALE_TRANSITIONS
    cancelled_status: ClassVar[SaleStatus] = SaleStatus.CANCELLED
    pending_status: ClassVar[SaleStatus] = SaleStatus.PENDING
    booking_type: ClassVar[BookingType] = BookingType.SALE

    status: SaleStatus = SaleStatus.PENDING
    sale_price: Decimal = field(default_factory=lambda: Decimal("0.00"))
