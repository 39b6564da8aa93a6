"""
Slot locks keyed by (chef_id, date), and per-booking locks.

The overlap check and the insert must run under the same slot lock: overlap
is a range condition, so no unique index can enforce it. Payment mutations
of one booking run under its booking lock so a gateway call is never issued
twice for the same state.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date

import redis.asyncio as redis
from redis.exceptions import LockError

from .errors import RepositoryError

logger = logging.getLogger(__name__)


def slot_key(chef_id: str, day: date) -> str:
    return f"slot-lock:{chef_id}:{day.isoformat()}"


def booking_key(booking_id: str) -> str:
    return f"booking-lock:{booking_id}"


class LocalSlotLocks:
    """Process-local locks; enough for a single instance and for tests."""

    def __init__(self, timeout_seconds: float = 10.0):
        self.timeout_seconds = timeout_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def hold(self, chef_id: str, day: date):
        return self.hold_key(slot_key(chef_id, day))

    @asynccontextmanager
    async def hold_key(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                raise RepositoryError(f"Timed out waiting for lock {key}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                self._holders.pop(key, None)
                self._locks.pop(key, None)


class RedisSlotLocks:
    """Redis locks shared by every booking-service instance."""

    def __init__(self, redis_client, timeout_seconds: float = 10.0):
        self._redis = redis_client
        self.timeout_seconds = timeout_seconds

    def hold(self, chef_id: str, day: date):
        return self.hold_key(slot_key(chef_id, day))

    @asynccontextmanager
    async def hold_key(self, key: str):
        lock = self._redis.lock(
            key,
            timeout=self.timeout_seconds,
            blocking_timeout=self.timeout_seconds,
        )
        try:
            acquired = await lock.acquire()
        except redis.RedisError as e:
            raise RepositoryError(f"Lock unavailable: {e}")
        if not acquired:
            raise RepositoryError(f"Timed out waiting for lock {key}")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # lock expired while held; the insert already committed or failed
                logger.warning("lock %s expired before release", key)


def build_slot_locks(redis_url: str | None, timeout_seconds: float):
    if redis_url:
        return RedisSlotLocks(redis.from_url(redis_url, decode_responses=True), timeout_seconds)
    return LocalSlotLocks(timeout_seconds)
