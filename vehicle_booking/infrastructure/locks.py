"""
Per-vehicle write locks.

Every booking write (create, admin transition, owner cancel) holds the lock
of the vehicle it touches for the whole read-check-write transaction, so two
requests for the same vehicle can never both pass the availability check.

Two backends share the ``LockManager`` interface:

* ``RedisLockManager`` -- ``DistributedLock`` using SET NX EX for acquire and
  a Lua script for atomic check-and-delete on release.  Needed as soon as
  more than one API process serves writes.
* ``LocalLockManager`` -- one ``asyncio.Lock`` per key, for single-process
  deployments and tests.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class LockNotAcquired(RuntimeError):
    """Raised when a lock could not be obtained within the wait budget."""


def vehicle_lock_key(vehicle_id: int) -> str:
    return f"vehicle:{vehicle_id}"


class DistributedLock:
    _RELEASE_LUA = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 30,
        wait_seconds: float = 0.0,
        retry_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.wait_seconds = wait_seconds
        self.retry_interval = retry_interval
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire once. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def acquire_blocking(self) -> bool:
        """Retry ``acquire`` until it succeeds or ``wait_seconds`` elapse."""
        deadline = time.monotonic() + self.wait_seconds
        while True:
            if await self.acquire():
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.retry_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(self._RELEASE_LUA, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire_blocking()
        if not acquired:
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()


class LockManager(ABC):
    @abstractmethod
    def hold(self, key: str):
        """Async context manager holding the lock for *key*."""


class RedisLockManager(LockManager):
    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 30,
        wait_seconds: float = 5.0,
        retry_interval: float = 0.05,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds
        self.retry_interval = retry_interval

    def hold(self, key: str) -> DistributedLock:
        return DistributedLock(
            self.client,
            key,
            ttl_seconds=self.ttl_seconds,
            wait_seconds=self.wait_seconds,
            retry_interval=self.retry_interval,
        )


class LocalLockManager(LockManager):
    """
    In-process locks keyed by name.

    A key stays registered only while some task holds or waits for it, so
    the registry never outgrows the set of vehicles currently being written.
    """

    def __init__(self, wait_seconds: float = 5.0):
        self.wait_seconds = wait_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait_seconds)
            except asyncio.TimeoutError:
                raise LockNotAcquired(f"Could not acquire lock: {key}") from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
