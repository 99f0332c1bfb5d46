"""
Hybrid in-memory + Redis locks for booking serialization

Booking checks ("one lab per day", cross-faculty overlap) read several rows
before writing, so requests touching the same (lab, date) are serialized.
The in-process lock always applies; a Redis lock is layered on top when Redis
is reachable so several API workers agree. Redis being down falls back to the
in-process lock only (fail-open), the database constraints still hold.
"""

import logging
import os
import time
import weakref
from contextlib import contextmanager
from datetime import date
from threading import Lock
from typing import Iterator, Optional

import redis

from ..config import BOOKING_LOCK_REDIS_ENABLED, BOOKING_LOCK_TIMEOUT

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None
# Don't hammer an unreachable Redis on every booking
REDIS_RETRY_INTERVAL = 60
_last_redis_failure = 0.0

_registry_lock = Lock()
# Entries vanish once no request holds or waits on the lock
_local_locks: "weakref.WeakValueDictionary[str, Lock]" = weakref.WeakValueDictionary()


def get_redis_client() -> Optional[redis.Redis]:
    """
    Get or create the Redis client used for distributed booking locks.
    Returns None when Redis is disabled or was unreachable recently.
    """
    global redis_client, _last_redis_failure

    if not BOOKING_LOCK_REDIS_ENABLED:
        return None
    if redis_client is not None:
        return redis_client
    if time.time() - _last_redis_failure < REDIS_RETRY_INTERVAL:
        return None

    redis_url = os.getenv("REDIS_URL")
    try:
        if redis_url:
            client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
        else:
            client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                password=os.getenv("REDIS_PASSWORD", None),
                db=int(os.getenv("REDIS_DB", "0")),
                ssl=os.getenv("REDIS_SSL", "false").lower() == "true",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        client.ping()
        redis_client = client
        logger.info("Redis connected for booking locks")
        return redis_client
    except Exception as e:
        _last_redis_failure = time.time()
        logger.warning(f"⚠️ Redis unavailable - booking locks are process-local only: {e}")
        return None


def lab_day_key(lab_id: int, day: date) -> str:
    return f"booking_lock:lab:{lab_id}:{day.isoformat()}"


def _local_lock(key: str) -> Lock:
    with _registry_lock:
        lock = _local_locks.get(key)
        if lock is None:
            lock = Lock()
            _local_locks[key] = lock
        return lock


@contextmanager
def lab_day_lock(lab_id: int, day: date, timeout: int = BOOKING_LOCK_TIMEOUT) -> Iterator[None]:
    """Hold the booking lock for one lab on one date"""
    key = lab_day_key(lab_id, day)
    local = _local_lock(key)

    with local:
        distributed = None
        client = get_redis_client()
        if client is not None:
            try:
                distributed = client.lock(key, timeout=timeout, blocking_timeout=timeout)
                if not distributed.acquire():
                    logger.warning(f"⚠️ Timed out waiting for Redis lock {key}, continuing locally")
                    distributed = None
            except Exception as e:
                logger.warning(f"⚠️ Redis lock {key} failed, continuing locally: {e}")
                distributed = None

        try:
            yield
        finally:
            if distributed is not None:
                try:
                    distributed.release()
                except Exception as e:
                    # Expired locks raise LockNotOwnedError; the work is already committed
                    logger.warning(f"⚠️ Failed to release Redis lock {key}: {e}")
