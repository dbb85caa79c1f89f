from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
import logging
import secrets
import threading
import time
from typing import Dict, Iterator, Optional

from redis import Redis

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

# Deletes the key only while it still holds the caller's token
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


@dataclass
class _LocalEntry:
    lock: threading.Lock
    users: int = 0


# Used when redis is not configured or unreachable; serialises within one process only.
# An entry lives while someone holds or waits for its lock.
_LOCAL_LOCKS: Dict[str, _LocalEntry] = {}
_LOCAL_LOCKS_GUARD = threading.Lock()

_POLL_INTERVAL_S = 0.05


@dataclass(frozen=True)
class SlotLockHandle:
    backend: str
    key: str
    token: Optional[str] = None


def _lock_key(barber_id: str, day: date) -> str:
    return f"barbershop:lock:barber:{barber_id}:{day.isoformat()}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("booking_lock_sync_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def _checkout_local(key: str) -> threading.Lock:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(key)
        if entry is None:
            entry = _LocalEntry(lock=threading.Lock())
            _LOCAL_LOCKS[key] = entry
        entry.users += 1
        return entry.lock


def _checkin_local(key: str) -> None:
    with _LOCAL_LOCKS_GUARD:
        entry = _LOCAL_LOCKS.get(key)
        if entry is None:
            return
        entry.users -= 1
        if entry.users <= 0:
            del _LOCAL_LOCKS[key]


def _acquire_local(key: str, wait_s: float) -> Optional[SlotLockHandle]:
    acquired = _checkout_local(key).acquire(timeout=max(wait_s, 0.0))
    prometheus_metrics.record_booking_lock("acquire", "local" if acquired else "blocked")
    if not acquired:
        _checkin_local(key)
        return None
    return SlotLockHandle(backend="local", key=key)


def acquire_slot_lock_sync(
    barber_id: str, day: date, ttl_s: Optional[int] = None, wait_s: Optional[float] = None
) -> Optional[SlotLockHandle]:
    """
    Acquire the lock guarding bookings of one barber on one local day.

    Waits up to ``wait_s`` seconds. Returns a handle naming the backend that
    granted the lock ("redis" or "local"), or None when it could not be
    obtained in time. A redis handle carries the random token stored under
    the key; only that token can release it.
    """
    key = _lock_key(barber_id, day)
    ttl = ttl_s if ttl_s is not None else settings.booking_lock_ttl_seconds
    wait = wait_s if wait_s is not None else settings.booking_lock_wait_seconds

    client = _get_sync_redis()
    if client is None:
        return _acquire_local(key, wait)

    token = secrets.token_hex(16)
    deadline = time.monotonic() + wait
    try:
        while True:
            if client.set(key, token, nx=True, ex=ttl):
                prometheus_metrics.record_booking_lock("acquire", "success")
                return SlotLockHandle(backend="redis", key=key, token=token)
            if time.monotonic() >= deadline:
                prometheus_metrics.record_booking_lock("acquire", "blocked")
                return None
            time.sleep(_POLL_INTERVAL_S)
    except Exception as exc:
        prometheus_metrics.record_booking_lock("acquire", "error")
        logger.warning(
            "booking_lock_sync_failed",
            extra={
                "barber_id": barber_id,
                "date": day.isoformat(),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return _acquire_local(key, max(deadline - time.monotonic(), 0.0))


def release_slot_lock_sync(handle: SlotLockHandle) -> None:
    if handle.backend == "local":
        with _LOCAL_LOCKS_GUARD:
            entry = _LOCAL_LOCKS.get(handle.key)
        if entry is not None:
            entry.lock.release()
        _checkin_local(handle.key)
        prometheus_metrics.record_booking_lock("release", "local")
        return

    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_booking_lock("release", "redis_unavailable")
        return
    try:
        release = client.register_script(_RELEASE_SCRIPT)
        deleted = release(keys=[handle.key], args=[handle.token])
        # not_found: the TTL lapsed and the key expired or now belongs to someone else
        prometheus_metrics.record_booking_lock("release", "success" if deleted else "not_found")
    except Exception as exc:
        prometheus_metrics.record_booking_lock("release", "error")
        logger.warning(
            "booking_lock_sync_release_failed",
            extra={
                "key": handle.key,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def booking_slot_lock(
    barber_id: str, day: date, ttl_s: Optional[int] = None, wait_s: Optional[float] = None
) -> Iterator[bool]:
    handle = acquire_slot_lock_sync(barber_id, day, ttl_s=ttl_s, wait_s=wait_s)
    try:
        yield handle is not None
    finally:
        if handle is not None:
            release_slot_lock_sync(handle)
