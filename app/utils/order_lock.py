"""
OrderLock - serializes status transitions of the same order.

Two requests changing the same order must not interleave: both could
read ``confirmed`` and both restore stock on cancel. The lock has two
layers:
- an in-process ``asyncio.Lock`` per order (always on)
- a Redis lock on top when ``REDIS_URL`` is configured, so several
  workers or hosts also serialize

Usage:
    from app.utils.order_lock import OrderLock

    async with OrderLock(order_id):
        await apply_transition(order_id, new_status)
"""

import asyncio
import logging
import time
from typing import Dict, Optional

from redis.exceptions import LockError, RedisError

from app.core.config import get_settings
from app.core.redis_client import get_redis_client
from app.utils.error_handler import LockAcquisitionError

logger = logging.getLogger(__name__)

__all__ = ["OrderLock", "LockAcquisitionError"]


class _LocalLockRegistry:
    """Reference-counted ``asyncio.Lock`` per key; entries vanish when unused."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._refs: Dict[str, int] = {}

    def checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._refs[key] = self._refs.get(key, 0) + 1
        return lock

    def checkin(self, key: str) -> None:
        remaining = self._refs.get(key, 0) - 1
        if remaining <= 0:
            self._refs.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._refs[key] = remaining

    def __len__(self) -> int:
        return len(self._locks)


_local_locks = _LocalLockRegistry()


class OrderLock:
    """
    Async context manager holding the lock of one order.

    Args:
        order_id: Order being transitioned
        timeout_seconds: Redis lock TTL, prevents deadlocks if a worker dies
        wait_seconds: How long to wait for the lock before giving up

    Raises:
        LockAcquisitionError: If the lock could not be acquired in time
    """

    def __init__(
        self,
        order_id: str,
        timeout_seconds: Optional[int] = None,
        wait_seconds: Optional[float] = None,
    ):
        settings = get_settings()
        self.order_id = order_id
        self.lock_key = f"lock:order:{order_id}"
        self.timeout_seconds = timeout_seconds or settings.ORDER_LOCK_TIMEOUT_SECONDS
        self.wait_seconds = wait_seconds if wait_seconds is not None else settings.ORDER_LOCK_WAIT_SECONDS
        self._local_lock: Optional[asyncio.Lock] = None
        self._redis_lock = None
        self._acquired_at: Optional[float] = None

    async def __aenter__(self) -> "OrderLock":
        started = time.monotonic()
        self._local_lock = _local_locks.checkout(self.lock_key)

        try:
            await asyncio.wait_for(self._local_lock.acquire(), timeout=self.wait_seconds)
        except asyncio.TimeoutError:
            _local_locks.checkin(self.lock_key)
            self._local_lock = None
            raise LockAcquisitionError(
                message=f"Order {self.order_id} is being updated by another request",
                lock_key=self.lock_key,
                waited_seconds=round(time.monotonic() - started, 3),
            )

        try:
            remaining = max(self.wait_seconds - (time.monotonic() - started), 0.0)
            await self._acquire_redis(remaining, started)
        except BaseException:
            self._release_local()
            raise

        self._acquired_at = time.monotonic()
        logger.debug(f"🔒 Acquired lock '{self.lock_key}'")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            await self._release_redis()
        finally:
            self._release_local()

        held = time.monotonic() - (self._acquired_at or time.monotonic())
        if exc_type:
            logger.debug(
                f"🔓 Released lock '{self.lock_key}' after {held:.2f}s (exception occurred: {exc_type.__name__})"
            )
        else:
            logger.debug(f"🔓 Released lock '{self.lock_key}' after {held:.2f}s")
        return False

    async def _acquire_redis(self, wait_seconds: float, started: float) -> None:
        client = get_redis_client()
        if client is None:
            return

        redis_lock = client.lock(
            self.lock_key,
            timeout=self.timeout_seconds,
            blocking_timeout=wait_seconds,
        )
        try:
            acquired = await redis_lock.acquire()
        except RedisError as e:
            # Sin Redis se mantiene el lock local del proceso
            logger.warning(f"⚠️ Redis unavailable for '{self.lock_key}', using process lock only: {e}")
            return

        if not acquired:
            raise LockAcquisitionError(
                message=f"Order {self.order_id} is being updated by another worker",
                lock_key=self.lock_key,
                waited_seconds=round(time.monotonic() - started, 3),
            )
        self._redis_lock = redis_lock

    async def _release_redis(self) -> None:
        if self._redis_lock is None:
            return
        try:
            await self._redis_lock.release()
        except LockError as e:
            logger.warning(f"Redis lock '{self.lock_key}' expired before release: {e}")
        except RedisError as e:
            logger.warning(f"Failed to release Redis lock '{self.lock_key}': {e}")
        finally:
            self._redis_lock = None

    def _release_local(self) -> None:
        if self._local_lock is None:
            return
        if self._local_lock.locked():
            self._local_lock.release()
        _local_locks.checkin(self.lock_key)
        self._local_lock = None
