"""Redis async connection pool and lock-manager factory."""

import redis.asyncio as aioredis

from vehicle_booking.config import settings
from vehicle_booking.infrastructure.locks import (
    LocalLockManager,
    LockManager,
    RedisLockManager,
)

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)

_local_locks: LocalLockManager | None = None


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


async def get_lock_manager() -> LockManager:
    """Lock backend chosen by ``settings.lock_backend``."""
    global _local_locks
    if settings.lock_backend == "local":
        if _local_locks is None:
            _local_locks = LocalLockManager(wait_seconds=settings.lock_wait_seconds)
        return _local_locks
    return RedisLockManager(
        await get_redis(),
        ttl_seconds=settings.lock_ttl_seconds,
        wait_seconds=settings.lock_wait_seconds,
        retry_interval=settings.lock_retry_interval_seconds,
    )
