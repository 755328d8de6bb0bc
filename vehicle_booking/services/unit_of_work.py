"""
Transaction discipline for booking writes.

``UnitOfWork.run`` executes a unit of work as

    acquire vehicle lock -> BEGIN -> work(session) -> COMMIT -> release lock

so that the availability check, the reservation insert and any vehicle
status cascade either all commit or all roll back, and no other writer can
interleave for the same vehicle.

Persistence errors and lock timeouts surface as ``TransientFault``.  A unit
of work flagged ``retryable`` is re-run once before the fault reaches the
caller; business errors (``BookingError`` subclasses) are never retried.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vehicle_booking.domain.errors import TransientFault
from vehicle_booking.infrastructure.locks import (
    LockManager,
    LockNotAcquired,
    vehicle_lock_key,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitOfWork:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: LockManager,
    ):
        self.session_factory = session_factory
        self.locks = locks

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[AsyncSession]:
        """Plain session for read paths; no lock, no explicit transaction."""
        async with self.session_factory() as session:
            yield session

    @asynccontextmanager
    async def locked(self, vehicle_id: int) -> AsyncIterator[AsyncSession]:
        key = vehicle_lock_key(vehicle_id)
        try:
            async with self.locks.hold(key):
                async with self.session_factory() as session:
                    async with session.begin():
                        yield session
        except LockNotAcquired as exc:
            logger.warning("Timed out waiting for %s", key)
            raise TransientFault(
                "Vehicle is busy, please retry", code="lock_timeout"
            ) from exc
        except DBAPIError as exc:
            logger.exception("Booking transaction failed for %s", key)
            raise TransientFault(
                "Booking could not be saved, please retry",
                code="persistence_failure",
            ) from exc

    async def run(
        self,
        vehicle_id: int,
        work: Callable[[AsyncSession], Awaitable[T]],
        *,
        retryable: bool = False,
    ) -> T:
        attempts = 2 if retryable else 1
        for attempt in range(1, attempts + 1):
            try:
                async with self.locked(vehicle_id) as session:
                    return await work(session)
            except TransientFault as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Retrying unit of work for vehicle %s after %s",
                    vehicle_id,
                    exc.code,
                )
        raise AssertionError("unreachable")
