"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin and 5 customers
  - 8 vehicles (rental-only, sale-only and both)
  - 4 rentals (mix of PENDING, CONFIRMED, COMPLETED; one guest booking)
  - 1 pending sale
"""

import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import text

from vehicle_booking.domain.enums import (
    PaymentMethod,
    PaymentStatus,
    RentalStatus,
    SaleStatus,
    UserRole,
    VehicleKind,
    VehicleStatus,
)
from vehicle_booking.domain.overlap import DateRange
from vehicle_booking.domain.pricing import PricingEngine
from vehicle_booking.infrastructure.database import async_session_factory, engine
from vehicle_booking.infrastructure.models import (
    RentalModel,
    SaleModel,
    UserModel,
    VehicleModel,
)


USERS = [
    {"first_name": "Ada", "last_name": "Admin", "email": "admin@example.com", "role": UserRole.ADMIN},
    {"first_name": "Aarav", "last_name": "Sharma", "email": "aarav@example.com", "phone": "+91 98200 00001"},
    {"first_name": "Priya", "last_name": "Patel", "email": "priya@example.com", "phone": "+91 98200 00002"},
    {"first_name": "Rohan", "last_name": "Mehta", "email": "rohan@example.com", "phone": "+91 98200 00003"},
    {"first_name": "Sneha", "last_name": "Gupta", "email": "sneha@example.com"},
    {"first_name": "Vikram", "last_name": "Singh", "email": "vikram@example.com"},
]

VEHICLES = [
    {"make": "Toyota", "model": "Corolla", "year": 2022, "kind": VehicleKind.RENTAL_ONLY, "daily": "50", "weekly": "300"},
    {"make": "Honda", "model": "Civic", "year": 2023, "kind": VehicleKind.RENTAL_ONLY, "daily": "55", "weekly": None},
    {"make": "Ford", "model": "Ranger", "year": 2021, "kind": VehicleKind.BOTH, "daily": "80", "weekly": "480", "sale": "28500"},
    {"make": "Tesla", "model": "Model 3", "year": 2024, "kind": VehicleKind.BOTH, "daily": "120", "weekly": "700", "sale": "41990"},
    {"make": "BMW", "model": "X5", "year": 2020, "kind": VehicleKind.SALE_ONLY, "sale": "38900"},
    {"make": "Audi", "model": "A4", "year": 2019, "kind": VehicleKind.SALE_ONLY, "sale": "21500"},
    {"make": "Kia", "model": "Sportage", "year": 2023, "kind": VehicleKind.RENTAL_ONLY, "daily": "65", "weekly": "390"},
    {"make": "Mazda", "model": "CX-5", "year": 2018, "kind": VehicleKind.RENTAL_ONLY, "daily": "45", "weekly": "270", "active": False},
]


def _money(value):
    return Decimal(value) if value is not None else None


async def seed():
    pricing = PricingEngine()
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        user_models = []
        for u in USERS:
            m = UserModel(
                first_name=u["first_name"],
                last_name=u["last_name"],
                email=u["email"],
                phone=u.get("phone"),
                role=u.get("role", UserRole.CUSTOMER),
            )
            session.add(m)
            user_models.append(m)
        await session.flush()
        print(f"  Created {len(user_models)} users")

        # ── Vehicles ──────────────────────────────────────────────────
        vehicle_models = []
        for v in VEHICLES:
            m = VehicleModel(
                make=v["make"],
                model=v["model"],
                year=v["year"],
                kind=v["kind"],
                status=VehicleStatus.AVAILABLE,
                is_active=v.get("active", True),
                daily_rate=_money(v.get("daily")),
                weekly_rate=_money(v.get("weekly")),
                sale_price=_money(v.get("sale")),
            )
            session.add(m)
            vehicle_models.append(m)
        await session.flush()
        print(f"  Created {len(vehicle_models)} vehicles")

        # ── Rentals ───────────────────────────────────────────────────
        today = date.today()
        rentals_data = [
            {"user": user_models[1], "vehicle": vehicle_models[0], "offset": 3, "days": 5, "status": RentalStatus.PENDING},
            {"user": user_models[2], "vehicle": vehicle_models[0], "offset": 10, "days": 8, "status": RentalStatus.CONFIRMED},
            {"user": user_models[3], "vehicle": vehicle_models[2], "offset": -20, "days": 7, "status": RentalStatus.COMPLETED},
            {"user": None, "vehicle": vehicle_models[6], "offset": 1, "days": 2, "status": RentalStatus.PENDING},
        ]
        for r in rentals_data:
            vehicle = r["vehicle"]
            start = today + timedelta(days=r["offset"])
            period = DateRange(start, start + timedelta(days=r["days"]))
            rental = RentalModel(
                vehicle_id=vehicle.id,
                user_id=r["user"].id if r["user"] else None,
                start_date=period.start,
                end_date=period.end,
                total_price=pricing.rental_price(
                    period, vehicle.daily_rate, vehicle.weekly_rate
                ),
                status=r["status"],
                payment_status=(
                    PaymentStatus.PAID
                    if r["status"] != RentalStatus.PENDING
                    else PaymentStatus.PENDING
                ),
                payment_method=PaymentMethod.CARD,
            )
            if r["user"] is None:
                rental.guest_first_name = "Walk"
                rental.guest_last_name = "In"
                rental.guest_email = "walk.in@example.com"
                rental.guest_phone = "+1 555 0100"
                rental.guest_address = "1 Main Street"
                rental.guest_license_number = "D1234567"
            if r["status"] == RentalStatus.CONFIRMED:
                vehicle.status = VehicleStatus.RENTED
            session.add(rental)
        await session.flush()
        print(f"  Created {len(rentals_data)} rentals")

        # ── Sales ─────────────────────────────────────────────────────
        sale_vehicle = vehicle_models[4]
        session.add(
            SaleModel(
                vehicle_id=sale_vehicle.id,
                user_id=user_models[4].id,
                sale_price=pricing.sale_price(sale_vehicle.sale_price),
                status=SaleStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                payment_method=PaymentMethod.BANK_TRANSFER,
                notes="Wants a test drive first",
            )
        )
        await session.flush()
        print("  Created 1 sale")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
