"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from vehicle_booking.domain.entities import Identity
from vehicle_booking.domain.enums import UserRole
from vehicle_booking.infrastructure.database import async_session_factory
from vehicle_booking.infrastructure.locks import LockManager
from vehicle_booking.infrastructure.redis_client import get_lock_manager
from vehicle_booking.services.bookings import BookingLifecycleManager
from vehicle_booking.services.queries import BookingQueries
from vehicle_booking.services.transitions import StatusTransitionEngine
from vehicle_booking.services.unit_of_work import UnitOfWork


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_unit_of_work(
    locks: LockManager = Depends(get_lock_manager),
) -> UnitOfWork:
    return UnitOfWork(async_session_factory, locks)


async def get_booking_manager(
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> BookingLifecycleManager:
    return BookingLifecycleManager(uow)


async def get_transition_engine(
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> StatusTransitionEngine:
    return StatusTransitionEngine(uow)


async def get_queries(db: AsyncSession = Depends(get_db)) -> BookingQueries:
    return BookingQueries(db)


# ── Identity ──────────────────────────────────────────────────────────
# Authentication happens upstream; the gateway forwards the caller as
# X-User-Id / X-User-Role headers.


async def get_identity(
    x_user_id: Optional[int] = Header(None),
    x_user_role: Optional[UserRole] = Header(None),
) -> Optional[Identity]:
    if x_user_id is None:
        return None
    return Identity(user_id=x_user_id, role=x_user_role or UserRole.CUSTOMER)


async def require_identity(
    identity: Optional[Identity] = Depends(get_identity),
) -> Identity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


async def require_admin(identity: Identity = Depends(require_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity
