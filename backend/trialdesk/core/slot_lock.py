"""
Redis advisory mutex around slot reservation.

The conditional UPDATE in AvailabilityRepository.reserve is the authority on
who wins a slot. This lock only narrows the window in which two sales agents
contend for the same (teacher, start) pair. When Redis is disabled or
unreachable, acquisition reports success so reservation proceeds on the
database guarantee alone.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
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


def _lock_key(teacher_id: str, start_utc: datetime) -> str:
    return f"{settings.slot_lock_namespace}:lock:slot:{teacher_id}:{start_utc.strftime('%Y%m%dT%H%M')}"


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
            )
            client.ping()
        except (RedisError, OSError) as exc:
            logger.warning("slot_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


def acquire_slot_lock(teacher_id: str, start_utc: datetime, ttl_s: Optional[int] = None) -> bool:
    if not settings.slot_lock_enabled:
        return True
    client = _get_sync_redis()
    if client is None:
        prometheus_metrics.record_slot_lock("acquire", "redis_unavailable")
        return True
    try:
        acquired = bool(
            client.set(
                _lock_key(teacher_id, start_utc),
                str(time.time()),
                nx=True,
                ex=ttl_s or settings.slot_lock_ttl_seconds,
            )
        )
    except RedisError as exc:
        prometheus_metrics.record_slot_lock("acquire", "error")
        logger.warning(
            "slot_lock_acquire_failed",
            extra={
                "teacher_id": teacher_id,
                "start_utc": start_utc.isoformat(),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )
        return True
    prometheus_metrics.record_slot_lock("acquire", "success" if acquired else "blocked")
    return acquired


def release_slot_lock(teacher_id: str, start_utc: datetime) -> None:
    if not settings.slot_lock_enabled:
        return
    client = _get_sync_redis()
    if client is None:
        return
    try:
        deleted = client.delete(_lock_key(teacher_id, start_utc))
        prometheus_metrics.record_slot_lock("release", "success" if deleted else "not_found")
    except RedisError as exc:
        prometheus_metrics.record_slot_lock("release", "error")
        logger.warning(
            "slot_lock_release_failed",
            extra={
                "teacher_id": teacher_id,
                "start_utc": start_utc.isoformat(),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )


@contextmanager
def slot_lock(teacher_id: str, start_utc: datetime, ttl_s: Optional[int] = None) -> Iterator[bool]:
    acquired = acquire_slot_lock(teacher_id, start_utc, ttl_s=ttl_s)
    try:
        yield acquired
    finally:
        if acquired:
            release_slot_lock(teacher_id, start_utc)
