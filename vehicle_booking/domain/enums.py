"""Domain enumerations, state-transition rules and vehicle-status cascades."""

import enum


class VehicleKind(str, enum.Enum):
    RENTAL_ONLY = "RENTAL_ONLY"
    SALE_ONLY = "SALE_ONLY"
    BOTH = "BOTH"

    @property
    def rentable(self) -> bool:
        return self in (VehicleKind.RENTAL_ONLY, VehicleKind.BOTH)

    @property
    def sellable(self) -> bool:
        return self in (VehicleKind.SALE_ONLY, VehicleKind.BOTH)


class VehicleStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    SOLD = "SOLD"


class RentalStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SaleStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


class BookingType(str, enum.Enum):
    RENTAL = "rental"
    SALE = "sale"


# Statuses that count toward conflict detection
BLOCKING_RENTAL_STATUSES: frozenset[RentalStatus] = frozenset(
    {RentalStatus.PENDING, RentalStatus.CONFIRMED, RentalStatus.ACTIVE}
)
BLOCKING_SALE_STATUSES: frozenset[SaleStatus] = frozenset(
    {SaleStatus.PENDING, SaleStatus.CONFIRMED}
)


# State machine: maps current status -> set of valid next statuses
RENTAL_TRANSITIONS: dict[RentalStatus, set[RentalStatus]] = {
    RentalStatus.PENDING: {RentalStatus.CONFIRMED, RentalStatus.CANCELLED},
    RentalStatus.CONFIRMED: {
        RentalStatus.ACTIVE,
        RentalStatus.CANCELLED,
        RentalStatus.COMPLETED,
    },
    RentalStatus.ACTIVE: {RentalStatus.COMPLETED, RentalStatus.CANCELLED},
    RentalStatus.COMPLETED: set(),
    RentalStatus.CANCELLED: set(),
}

SALE_TRANSITIONS: dict[SaleStatus, set[SaleStatus]] = {
    SaleStatus.PENDING: {SaleStatus.CONFIRMED, SaleStatus.CANCELLED},
    SaleStatus.CONFIRMED: {SaleStatus.COMPLETED, SaleStatus.CANCELLED},
    SaleStatus.COMPLETED: set(),
    SaleStatus.CANCELLED: set(),
}


# Vehicle status written alongside a reservation entering the given status.
# Statuses not listed leave the vehicle untouched (a completed sale stays SOLD).
RENTAL_VEHICLE_CASCADE: dict[RentalStatus, VehicleStatus] = {
    RentalStatus.CONFIRMED: VehicleStatus.RENTED,
    RentalStatus.COMPLETED: VehicleStatus.AVAILABLE,
    RentalStatus.CANCELLED: VehicleStatus.AVAILABLE,
}

SALE_VEHICLE_CASCADE: dict[SaleStatus, VehicleStatus] = {
    SaleStatus.CONFIRMED: VehicleStatus.SOLD,
    SaleStatus.CANCELLED: VehicleStatus.AVAILABLE,
}
