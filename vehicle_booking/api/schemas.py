"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from vehicle_booking.domain.availability import AvailabilityResult
from vehicle_booking.domain.entities import (
    GuestProfile,
    OwnerSummary,
    Rental,
    Sale,
    Vehicle,
    VehicleSummary,
)
from vehicle_booking.domain.enums import (
    BookingType,
    PaymentMethod,
    PaymentStatus,
    RentalStatus,
    SaleStatus,
    VehicleKind,
    VehicleStatus,
)
from vehicle_booking.domain.listing import Pagination


# ── Requests ──────────────────────────────────────────────────────────


class GuestInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    license_number: str = ""

    def to_profile(self) -> GuestProfile:
        return GuestProfile(**self.model_dump())


class AvailabilityCheckRequest(BaseModel):
    vehicle_id: int
    start_date: date = Field(..., examples=["2024-01-15"])
    end_date: date = Field(..., examples=["2024-01-20"])
    exclude_rental_id: Optional[int] = Field(
        None, description="Ignore this rental (re-checking while editing it)."
    )


class RentalCreateRequest(BaseModel):
    vehicle_id: int
    start_date: date = Field(..., examples=["2024-01-15"])
    end_date: date = Field(..., examples=["2024-01-20"])
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=1000)
    agree_to_terms: bool = False
    guest_info: Optional[GuestInfo] = Field(
        None, description="Required when the caller is not authenticated."
    )
    idempotency_key: Optional[str] = Field(
        None,
        max_length=64,
        description="Client-generated UUID to prevent double-booking on retries.",
    )


class SaleCreateRequest(BaseModel):
    vehicle_id: int
    payment_method: Optional[PaymentMethod] = None
    notes: Optional[str] = Field(None, max_length=1000)
    agree_to_terms: bool = False
    guest_info: Optional[GuestInfo] = None
    idempotency_key: Optional[str] = Field(None, max_length=64)


class RentalStatusUpdateRequest(BaseModel):
    status: RentalStatus
    payment_status: Optional[PaymentStatus] = None
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class SaleStatusUpdateRequest(BaseModel):
    status: SaleStatus
    payment_status: Optional[PaymentStatus] = None
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class CancelBookingRequest(BaseModel):
    cancellation_reason: str = Field(
        ..., min_length=1, max_length=500, examples=["Change of plans"]
    )


# ── Responses ─────────────────────────────────────────────────────────


class ConflictingRentalResponse(BaseModel):
    id: int
    start_date: date
    end_date: date


class AvailabilityResponse(BaseModel):
    available: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    conflicting_rentals: list[ConflictingRentalResponse] = []
    blocking_sale_ids: list[int] = []

    @classmethod
    def from_result(cls, result: AvailabilityResult) -> "AvailabilityResponse":
        return cls(
            available=result.available,
            reason=result.reason.value if result.reason else None,
            message=result.message,
            conflicting_rentals=[
                ConflictingRentalResponse(
                    id=c.id, start_date=c.start_date, end_date=c.end_date
                )
                for c in result.conflicts
            ],
            blocking_sale_ids=list(result.blocking_sale_ids),
        )


class VehicleSummaryResponse(BaseModel):
    id: int
    make: str
    model: str
    year: int
    daily_rate: Optional[Decimal] = None
    weekly_rate: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None

    model_config = {"from_attributes": True}


class OwnerResponse(BaseModel):
    is_guest: bool
    user_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    license_number: Optional[str] = None

    model_config = {"from_attributes": True}


def _vehicle(summary: Optional[VehicleSummary]) -> Optional[VehicleSummaryResponse]:
    return VehicleSummaryResponse.model_validate(summary) if summary else None


def _owner(summary: Optional[OwnerSummary]) -> Optional[OwnerResponse]:
    return OwnerResponse.model_validate(summary) if summary else None


class _BookingFields(BaseModel):
    id: int
    vehicle_id: int
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    vehicle: Optional[VehicleSummaryResponse] = None
    owner: Optional[OwnerResponse] = None


def _common(booking) -> dict:
    return dict(
        id=booking.id,
        vehicle_id=booking.vehicle_id,
        payment_status=booking.payment_status,
        payment_method=booking.payment_method,
        notes=booking.notes,
        cancellation_reason=booking.cancellation_reason,
        cancelled_at=booking.cancelled_at,
        cancelled_by=booking.cancelled_by,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
        vehicle=_vehicle(booking.vehicle),
        owner=_owner(booking.owner_summary),
    )


class RentalResponse(_BookingFields):
    status: RentalStatus
    start_date: date
    end_date: date
    total_price: Decimal

    @classmethod
    def from_entity(cls, rental: Rental) -> "RentalResponse":
        return cls(
            **_common(rental),
            status=rental.status,
            start_date=rental.start_date,
            end_date=rental.end_date,
            total_price=rental.total_price,
        )


class SaleResponse(_BookingFields):
    status: SaleStatus
    sale_price: Decimal

    @classmethod
    def from_entity(cls, sale: Sale) -> "SaleResponse":
        return cls(**_common(sale), status=sale.status, sale_price=sale.sale_price)


class BookingListItem(_BookingFields):
    """Rentals and sales merged into one list, tagged by ``type``."""

    type: BookingType
    status: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_price: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None

    @classmethod
    def from_entity(cls, booking) -> "BookingListItem":
        if isinstance(booking, Rental):
            return cls(
                **_common(booking),
                type=BookingType.RENTAL,
                status=booking.status.value,
                start_date=booking.start_date,
                end_date=booking.end_date,
                total_price=booking.total_price,
            )
        return cls(
            **_common(booking),
            type=BookingType.SALE,
            status=booking.status.value,
            sale_price=booking.sale_price,
        )


class ScheduledRentalResponse(BaseModel):
    """Public view of a rental on a vehicle schedule; no owner details."""

    id: int
    start_date: date
    end_date: date
    status: RentalStatus
    payment_status: PaymentStatus
    total_price: Decimal
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, rental: Rental) -> "ScheduledRentalResponse":
        return cls(
            id=rental.id,
            start_date=rental.start_date,
            end_date=rental.end_date,
            status=rental.status,
            payment_status=rental.payment_status,
            total_price=rental.total_price,
            created_at=rental.created_at,
        )


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_pagination(cls, p: Pagination) -> "PaginationResponse":
        return cls(
            page=p.page,
            limit=p.limit,
            total=p.total,
            pages=p.pages,
            has_next=p.has_next,
            has_previous=p.has_previous,
        )


class RentalPageResponse(BaseModel):
    items: list[RentalResponse]
    pagination: PaginationResponse


class SalePageResponse(BaseModel):
    items: list[SaleResponse]
    pagination: PaginationResponse


class VehicleResponse(BaseModel):
    id: int
    make: str
    model: str
    year: int
    kind: VehicleKind
    status: VehicleStatus
    is_active: bool
    daily_rate: Optional[Decimal] = None
    weekly_rate: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None
    availability: Optional[AvailabilityResponse] = None

    @classmethod
    def from_entity(
        cls, vehicle: Vehicle, availability: Optional[AvailabilityResult] = None
    ) -> "VehicleResponse":
        return cls(
            id=vehicle.id,
            make=vehicle.make,
            model=vehicle.model,
            year=vehicle.year,
            kind=vehicle.kind,
            status=vehicle.status,
            is_active=vehicle.is_active,
            daily_rate=vehicle.daily_rate,
            weekly_rate=vehicle.weekly_rate,
            sale_price=vehicle.sale_price,
            availability=(
                AvailabilityResponse.from_result(availability)
                if availability is not None
                else None
            ),
        )


class VehiclePageResponse(BaseModel):
    items: list[VehicleResponse]
    pagination: PaginationResponse


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
    code: str
