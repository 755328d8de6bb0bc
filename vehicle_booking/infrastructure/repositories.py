"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``*_from_model`` helpers translate ORM rows
into the domain entities returned by the services.
"""

from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RentalModel, SaleModel, UserModel, VehicleModel
from vehicle_booking.domain.entities import (
    AuthenticatedOwner,
    GuestOwner,
    GuestProfile,
    OwnerRef,
    OwnerSummary,
    Rental,
    RentalInterval,
    Sale,
    Vehicle,
)
from vehicle_booking.domain.enums import (
    BLOCKING_RENTAL_STATUSES,
    BLOCKING_SALE_STATUSES,
    RentalStatus,
    SaleStatus,
)
from vehicle_booking.domain.listing import (
    PageRequest,
    VehicleListingQuery,
    VehicleSort,
)
from vehicle_booking.domain.overlap import DateRange


# ── Mapping ───────────────────────────────────────────────────────────


def vehicle_from_model(model: VehicleModel) -> Vehicle:
    return Vehicle(
        id=model.id,
        make=model.make,
        model=model.model,
        year=model.year,
        kind=model.kind,
        status=model.status,
        is_active=model.is_active,
        daily_rate=model.daily_rate,
        weekly_rate=model.weekly_rate,
        sale_price=model.sale_price,
        created_at=model.created_at,
    )


def owner_from_model(model: RentalModel | SaleModel) -> OwnerRef:
    if model.user_id is not None:
        return AuthenticatedOwner(model.user_id)
    return GuestOwner(
        GuestProfile(
            first_name=model.guest_first_name or "",
            last_name=model.guest_last_name or "",
            email=model.guest_email or "",
            phone=model.guest_phone or "",
            address=model.guest_address or "",
            license_number=model.guest_license_number or "",
        )
    )


def owner_summary(owner: OwnerRef, user: Optional[UserModel]) -> OwnerSummary:
    if isinstance(owner, GuestOwner):
        p = owner.profile
        return OwnerSummary(
            is_guest=True,
            first_name=p.first_name,
            last_name=p.last_name,
            email=p.email,
            phone=p.phone,
            address=p.address,
            license_number=p.license_number,
        )
    if user is None:
        return OwnerSummary(is_guest=False, user_id=owner.user_id)
    return OwnerSummary(
        is_guest=False,
        user_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        phone=user.phone,
    )


def _reservation_fields(model: RentalModel | SaleModel) -> dict:
    return dict(
        id=model.id,
        vehicle_id=model.vehicle_id,
        owner=owner_from_model(model),
        status=model.status,
        payment_status=model.payment_status,
        payment_method=model.payment_method,
        notes=model.notes,
        cancellation_reason=model.cancellation_reason,
        cancelled_at=model.cancelled_at,
        cancelled_by=model.cancelled_by,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def rental_from_model(
    model: RentalModel,
    vehicle: Optional[VehicleModel] = None,
    user: Optional[UserModel] = None,
) -> Rental:
    rental = Rental(
        **_reservation_fields(model),
        start_date=model.start_date,
        end_date=model.end_date,
        total_price=model.total_price,
    )
    if vehicle is not None:
        rental.vehicle = vehicle_from_model(vehicle).summary()
    rental.owner_summary = owner_summary(rental.owner, user)
    return rental


def sale_from_model(
    model: SaleModel,
    vehicle: Optional[VehicleModel] = None,
    user: Optional[UserModel] = None,
) -> Sale:
    sale = Sale(**_reservation_fields(model), sale_price=model.sale_price)
    if vehicle is not None:
        sale.vehicle = vehicle_from_model(vehicle).summary()
    sale.owner_summary = owner_summary(sale.owner, user)
    return sale


def apply_owner(model: RentalModel | SaleModel, owner: OwnerRef) -> None:
    if isinstance(owner, AuthenticatedOwner):
        model.user_id = owner.user_id
        return
    p = owner.profile
    model.user_id = None
    model.guest_first_name = p.first_name.strip()
    model.guest_last_name = p.last_name.strip()
    model.guest_email = p.email.strip()
    model.guest_phone = p.phone.strip()
    model.guest_address = p.address.strip()
    model.guest_license_number = p.license_number.strip()


# ── Repositories ──────────────────────────────────────────────────────


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_for_update(self, vehicle_id: int) -> Optional[VehicleModel]:
        """SELECT ... FOR UPDATE: serializes booking writers per vehicle."""
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_many(self, ids: Iterable[int]) -> dict[int, VehicleModel]:
        ids = set(ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(VehicleModel).where(VehicleModel.id.in_(ids))
        )
        return {v.id: v for v in result.scalars().all()}

    def _listing_filter(self, query: VehicleListingQuery):
        stmt = select(VehicleModel)
        if query.kind is not None:
            stmt = stmt.where(VehicleModel.kind == query.kind)
        if query.active is not None:
            stmt = stmt.where(VehicleModel.is_active.is_(query.active))
        if query.search:
            pattern = f"%{query.search}%"
            stmt = stmt.where(
                or_(
                    VehicleModel.make.ilike(pattern),
                    VehicleModel.model.ilike(pattern),
                )
            )
        period = query.period
        if period is not None and query.available_only:
            booked = select(RentalModel.vehicle_id).where(
                RentalModel.status.in_(list(BLOCKING_RENTAL_STATUSES)),
                RentalModel.start_date < period.end,
                RentalModel.end_date > period.start,
            )
            sold = select(SaleModel.vehicle_id).where(
                SaleModel.status.in_(list(BLOCKING_SALE_STATUSES))
            )
            stmt = stmt.where(
                VehicleModel.id.not_in(booked), VehicleModel.id.not_in(sold)
            )
        return stmt

    async def search(
        self, query: VehicleListingQuery
    ) -> tuple[list[VehicleModel], int]:
        stmt = self._listing_filter(query)
        total = await self.session.scalar(
            select(func.count()).select_from(stmt.subquery())
        )
        order = {
            VehicleSort.PRICE: VehicleModel.daily_rate.asc(),
            VehicleSort.YEAR: VehicleModel.year.desc(),
            VehicleSort.NAME: VehicleModel.make.asc(),
        }.get(query.sort, VehicleModel.created_at.desc())
        result = await self.session.execute(
            stmt.order_by(order, VehicleModel.id.desc())
            .offset(query.page.offset)
            .limit(query.page.limit)
        )
        return list(result.scalars().all()), total or 0


class RentalRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, rental: RentalModel) -> RentalModel:
        self.session.add(rental)
        await self.session.flush()
        return rental

    async def get_by_id(self, rental_id: int) -> Optional[RentalModel]:
        return await self.session.get(RentalModel, rental_id)

    async def get_for_update(self, rental_id: int) -> Optional[RentalModel]:
        result = await self.session.execute(
            select(RentalModel)
            .where(RentalModel.id == rental_id)
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_idempotency_key(self, key: str) -> Optional[RentalModel]:
        result = await self.session.execute(
            select(RentalModel).where(RentalModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def blocking_intervals(
        self, vehicle_id: int, period: Optional[DateRange] = None
    ) -> list[RentalInterval]:
        """Blocking rentals of a vehicle, optionally only those near *period*."""
        query = select(
            RentalModel.id,
            RentalModel.start_date,
            RentalModel.end_date,
            RentalModel.status,
        ).where(
            RentalModel.vehicle_id == vehicle_id,
            RentalModel.status.in_(list(BLOCKING_RENTAL_STATUSES)),
        )
        if period is not None:
            query = query.where(
                RentalModel.start_date < period.end,
                RentalModel.end_date > period.start,
            )
        result = await self.session.execute(query.order_by(RentalModel.start_date))
        return [
            RentalInterval(
                id=row.id,
                start_date=row.start_date,
                end_date=row.end_date,
                status=row.status,
            )
            for row in result.all()
        ]

    async def blocking_intervals_for(
        self, vehicle_ids: Iterable[int], period: DateRange
    ) -> dict[int, list[RentalInterval]]:
        ids = set(vehicle_ids)
        grouped: dict[int, list[RentalInterval]] = {i: [] for i in ids}
        if not ids:
            return grouped
        result = await self.session.execute(
            select(
                RentalModel.id,
                RentalModel.vehicle_id,
                RentalModel.start_date,
                RentalModel.end_date,
                RentalModel.status,
            ).where(
                RentalModel.vehicle_id.in_(ids),
                RentalModel.status.in_(list(BLOCKING_RENTAL_STATUSES)),
                RentalModel.start_date < period.end,
                RentalModel.end_date > period.start,
            )
        )
        for row in result.all():
            grouped[row.vehicle_id].append(
                RentalInterval(
                    id=row.id,
                    start_date=row.start_date,
                    end_date=row.end_date,
                    status=row.status,
                )
            )
        return grouped

    async def list_by_user(
        self, user_id: int, page: Optional[PageRequest] = None
    ) -> tuple[list[RentalModel], int]:
        return await self._page(RentalModel.user_id == user_id, page)

    async def list_all(
        self, page: Optional[PageRequest] = None, status: Optional[RentalStatus] = None
    ) -> tuple[list[RentalModel], int]:
        condition = RentalModel.status == status if status is not None else None
        return await self._page(condition, page)

    async def list_by_vehicle(self, vehicle_id: int) -> list[RentalModel]:
        rentals, _ = await self._page(RentalModel.vehicle_id == vehicle_id, None)
        return rentals

    async def _page(self, condition, page: Optional[PageRequest]):
        stmt = select(RentalModel)
        count = select(func.count()).select_from(RentalModel)
        if condition is not None:
            stmt = stmt.where(condition)
            count = count.where(condition)
        stmt = stmt.order_by(RentalModel.created_at.desc(), RentalModel.id.desc())
        if page is not None:
            stmt = stmt.offset(page.offset).limit(page.limit)
        result = await self.session.execute(stmt)
        total = await self.session.scalar(count)
        return list(result.scalars().all()), total or 0


class SaleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, sale: SaleModel) -> SaleModel:
        self.session.add(sale)
        await self.session.flush()
        return sale

    async def get_by_id(self, sale_id: int) -> Optional[SaleModel]:
        return await self.session.get(SaleModel, sale_id)

    async def get_for_update(self, sale_id: int) -> Optional[SaleModel]:
        result = await self.session.execute(
            select(SaleModel).where(SaleModel.id == sale_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_idempotency_key(self, key: str) -> Optional[SaleModel]:
        result = await self.session.execute(
            select(SaleModel).where(SaleModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def blocking_sale_ids(self, vehicle_id: int) -> list[int]:
        result = await self.session.execute(
            select(SaleModel.id)
            .where(
                SaleModel.vehicle_id == vehicle_id,
                SaleModel.status.in_(list(BLOCKING_SALE_STATUSES)),
            )
            .order_by(SaleModel.id)
        )
        return list(result.scalars().all())

    async def blocking_sale_ids_for(
        self, vehicle_ids: Iterable[int]
    ) -> dict[int, list[int]]:
        ids = set(vehicle_ids)
        grouped: dict[int, list[int]] = {i: [] for i in ids}
        if not ids:
            return grouped
        result = await self.session.execute(
            select(SaleModel.id, SaleModel.vehicle_id).where(
                SaleModel.vehicle_id.in_(ids),
                SaleModel.status.in_(list(BLOCKING_SALE_STATUSES)),
            )
        )
        for row in result.all():
            grouped[row.vehicle_id].append(row.id)
        return grouped

    async def list_by_user(
        self, user_id: int, page: Optional[PageRequest] = None
    ) -> tuple[list[SaleModel], int]:
        return await self._page(SaleModel.user_id == user_id, page)

    async def list_all(
        self, page: Optional[PageRequest] = None, status: Optional[SaleStatus] = None
    ) -> tuple[list[SaleModel], int]:
        condition = SaleModel.status == status if status is not None else None
        return await self._page(condition, page)

    async def _page(self, condition, page: Optional[PageRequest]):
        stmt = select(SaleModel)
        count = select(func.count()).select_from(SaleModel)
        if condition is not None:
            stmt = stmt.where(condition)
            count = count.where(condition)
        stmt = stmt.order_by(SaleModel.created_at.desc(), SaleModel.id.desc())
        if page is not None:
            stmt = stmt.offset(page.offset).limit(page.limit)
        result = await self.session.execute(stmt)
        total = await self.session.scalar(count)
        return list(result.scalars().all()), total or 0


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_many(self, ids: Iterable[int]) -> dict[int, UserModel]:
        ids = {i for i in ids if i is not None}
        if not ids:
            return {}
        result = await self.session.execute(
            select(UserModel).where(UserModel.id.in_(ids))
        )
        return {u.id: u for u in result.scalars().all()}
