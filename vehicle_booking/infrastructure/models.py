"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``     -- registered customers and admins
* ``vehicles``  -- inventory; the booking engine only writes ``status``
* ``rentals``   -- date-ranged rental bookings
* ``sales``     -- purchase bookings

A booking without ``user_id`` is a guest booking; its contact details live
in the ``guest_*`` columns.

Indexes
-------
* **B-Tree** on ``(vehicle_id, status)`` for rentals and sales: the conflict
  queries filter on exactly these columns.
* **B-Tree** on rental ``(start_date, end_date)`` for the listing overlap
  sub-query, and on ``user_id`` / ``idempotency_key`` for owner look-ups.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)

from .database import Base
from vehicle_booking.domain.enums import (
    PaymentMethod,
    PaymentStatus,
    RentalStatus,
    SaleStatus,
    UserRole,
    VehicleKind,
    VehicleStatus,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(40), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    make = Column(String(80), nullable=False)
    model = Column(String(80), nullable=False)
    year = Column(Integer, nullable=False)
    kind = Column(Enum(VehicleKind), default=VehicleKind.RENTAL_ONLY, nullable=False)
    status = Column(
        Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False
    )
    is_active = Column(Boolean, default=True, nullable=False)
    daily_rate = Column(Numeric(10, 2), nullable=True)
    weekly_rate = Column(Numeric(10, 2), nullable=True)
    sale_price = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_vehicles_kind_active", "kind", "is_active"),
        Index("idx_vehicles_status", "status"),
    )


class _GuestContactMixin:
    guest_first_name = Column(String(100), nullable=True)
    guest_last_name = Column(String(100), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(40), nullable=True)
    guest_address = Column(String(255), nullable=True)
    guest_license_number = Column(String(60), nullable=True)


class RentalModel(_GuestContactMixin, Base):
    __tablename__ = "rentals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    status = Column(Enum(RentalStatus), default=RentalStatus.PENDING, nullable=False)
    payment_status = Column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_method = Column(
        Enum(PaymentMethod), default=PaymentMethod.CARD, nullable=False
    )
    notes = Column(Text, nullable=True)
    idempotency_key = Column(String(64), unique=True, nullable=True)

    cancellation_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_rentals_vehicle_status", "vehicle_id", "status"),
        Index("idx_rentals_dates", "start_date", "end_date"),
        Index("idx_rentals_user", "user_id"),
    )


class SaleModel(_GuestContactMixin, Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    sale_price = Column(Numeric(12, 2), nullable=False)

    status = Column(Enum(SaleStatus), default=SaleStatus.PENDING, nullable=False)
    payment_status = Column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_method = Column(
        Enum(PaymentMethod), default=PaymentMethod.CARD, nullable=False
    )
    notes = Column(Text, nullable=True)
    idempotency_key = Column(String(64), unique=True, nullable=True)

    cancellation_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_sales_vehicle_status", "vehicle_id", "status"),
        Index("idx_sales_user", "user_id"),
    )
