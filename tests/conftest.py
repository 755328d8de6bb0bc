"""
Shared test fixtures.

Each test gets its own SQLite database file (via aiosqlite) so tests run
without Docker / PostgreSQL / Redis.  ``SELECT ... FOR UPDATE`` is a no-op
on SQLite; same-vehicle writers are serialized by the in-process lock
manager instead.
"""

import os

os.environ.setdefault("LOCK_BACKEND", "local")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from vehicle_booking.domain.enums import (
    PaymentStatus,
    RentalStatus,
    SaleStatus,
    UserRole,
    VehicleKind,
    VehicleStatus,
)
from vehicle_booking.infrastructure.database import Base
from vehicle_booking.infrastructure.locks import LocalLockManager
from vehicle_booking.infrastructure.models import (
    RentalModel,
    SaleModel,
    UserModel,
    VehicleModel,
)
from vehicle_booking.services.bookings import BookingLifecycleManager
from vehicle_booking.services.transitions import StatusTransitionEngine
from vehicle_booking.services.unit_of_work import UnitOfWork


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh database file, yield a session factory."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def locks() -> LocalLockManager:
    return LocalLockManager(wait_seconds=10)


@pytest.fixture
def uow(session_factory, locks) -> UnitOfWork:
    return UnitOfWork(session_factory, locks)


@pytest.fixture
def manager(uow) -> BookingLifecycleManager:
    return BookingLifecycleManager(uow)


@pytest.fixture
def transitions(uow) -> StatusTransitionEngine:
    return StatusTransitionEngine(uow)


# ── Seed helpers ──────────────────────────────────────────────────────


async def add_user(
    factory,
    email: str = "ada@example.com",
    role: UserRole = UserRole.CUSTOMER,
) -> int:
    async with factory() as session:
        user = UserModel(
            first_name="Ada",
            last_name="Lovelace",
            email=email,
            phone="+44 20 0000 0000",
            role=role,
        )
        session.add(user)
        await session.commit()
        return user.id


async def add_vehicle(
    factory,
    *,
    kind: VehicleKind = VehicleKind.RENTAL_ONLY,
    status: VehicleStatus = VehicleStatus.AVAILABLE,
    is_active: bool = True,
    daily_rate: Optional[str] = "50.00",
    weekly_rate: Optional[str] = "300.00",
    sale_price: Optional[str] = None,
    make: str = "Toyota",
    model: str = "Corolla",
    year: int = 2022,
) -> int:
    async with factory() as session:
        vehicle = VehicleModel(
            make=make,
            model=model,
            year=year,
            kind=kind,
            status=status,
            is_active=is_active,
            daily_rate=Decimal(daily_rate) if daily_rate else None,
            weekly_rate=Decimal(weekly_rate) if weekly_rate else None,
            sale_price=Decimal(sale_price) if sale_price else None,
        )
        session.add(vehicle)
        await session.commit()
        return vehicle.id


async def add_rental(
    factory,
    vehicle_id: int,
    start: date,
    end: date,
    *,
    user_id: Optional[int] = None,
    status: RentalStatus = RentalStatus.PENDING,
) -> int:
    async with factory() as session:
        rental = RentalModel(
            vehicle_id=vehicle_id,
            user_id=user_id,
            start_date=start,
            end_date=end,
            total_price=Decimal("100.00"),
            status=status,
            payment_status=PaymentStatus.PENDING,
        )
        if user_id is None:
            rental.guest_first_name = "Grace"
            rental.guest_last_name = "Hopper"
            rental.guest_email = "grace@example.com"
            rental.guest_phone = "555-0100"
            rental.guest_address = "1 Navy Way"
            rental.guest_license_number = "GH-1906"
        session.add(rental)
        await session.commit()
        return rental.id


async def add_sale(
    factory,
    vehicle_id: int,
    *,
    user_id: Optional[int] = None,
    status: SaleStatus = SaleStatus.PENDING,
) -> int:
    async with factory() as session:
        sale = SaleModel(
            vehicle_id=vehicle_id,
            user_id=user_id,
            sale_price=Decimal("20000.00"),
            status=status,
            payment_status=PaymentStatus.PENDING,
        )
        if user_id is None:
            sale.guest_first_name = "Grace"
            sale.guest_last_name = "Hopper"
            sale.guest_email = "grace@example.com"
            sale.guest_phone = "555-0100"
            sale.guest_address = "1 Navy Way"
            sale.guest_license_number = "GH-1906"
        session.add(sale)
        await session.commit()
        return sale.id


async def vehicle_status(factory, vehicle_id: int) -> VehicleStatus:
    async with factory() as session:
        vehicle = await session.get(VehicleModel, vehicle_id)
        return vehicle.status
