"""
Redis mutex around a professional's calendar.

Serialises the scan-then-insert sequence across API workers. The lock fails
open: when Redis is unreachable the request proceeds and the database-level
lock taken by the hold store still applies.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
import time
from typing import Iterator, Optional

from redis import Redis
from redis.exceptions import RedisError

from ..monitoring.prometheus_metrics import prometheus_metrics
from .config import settings

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


def _lock_key(tenant_id: str, professional_id: str) -> str:
    return f"calendar:{tenant_id}:{professional_id}:mutex"


def _namespaced_key(key: str) -> str:
    return f"{settings.lock_namespace}:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
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
                socket_connect_timeout=1,
                socket_timeout=1,
            )
            client.ping()
        except RedisError as exc:
            logger.warning("calendar_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def set_redis_client(client: Optional[Redis]) -> None:
    """Swap the cached client (tests, worker reinit)."""
    global _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        _SYNC_REDIS = client


def acquire_calendar_lock(tenant_id: str, professional_id: str, ttl_s: int = 30) -> bool:
    if not settings.calendar_lock_enabled:
        return True
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_calendar_lock("acquire", "redis_unavailable")
        return True
    try:
        acquired = bool(
            client.set(
                _namespaced_key(_lock_key(tenant_id, professional_id)),
                str(time.time()),
                nx=True,
                ex=ttl_s,
            )
        )
    except RedisError as exc:
        prometheus_metrics.record_calendar_lock("acquire", "error")
        logger.warning(
            "calendar_lock_acquire_failed",
            extra={
                "tenant_id": tenant_id,
                "professional_id": professional_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return True
    prometheus_metrics.record_calendar_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_calendar_lock(tenant_id: str, professional_id: str) -> None:
    if not settings.calendar_lock_enabled:
        return
    client = _get_sync_redis()
    if client is None:
        return
    try:
        deleted = client.delete(_namespaced_key(_lock_key(tenant_id, professional_id)))
        prometheus_metrics.record_calendar_lock("release", "success" if deleted else "not_found")
    except RedisError as exc:
        prometheus_metrics.record_calendar_lock("release", "error")
        logger.warning(
            "calendar_lock_release_failed",
            extra={
                "tenant_id": tenant_id,
                "professional_id": professional_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def calendar_lock(tenant_id: str, professional_id: str, ttl_s: Optional[int] = None) -> Iterator[bool]:
    """Yield whether the mutex is held; release on exit only if it was acquired."""
    acquired = acquire_calendar_lock(
        tenant_id, professional_id, ttl_s=ttl_s or settings.calendar_lock_ttl_seconds
    )
    try:
        yield acquired
    finally:
        if acquired:
            release_calendar_lock(tenant_id, professional_id)
