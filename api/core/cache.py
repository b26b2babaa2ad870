"""
In-process response cache with a time-to-live.

One instance lives for the whole process (created in the app lifespan) and is
handed to routers through `get_cache`. Read-heavy endpoints store their JSON
payloads here; every mutating endpoint either deletes the affected key or
flushes everything.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any

from . import settings

logger = logging.getLogger(__name__)


class ResponseCache:
    def __init__(self, *, ttl_seconds: int, max_entries: int = 1000) -> None:
        self._ttl_seconds = max(0, int(ttl_seconds))
        self._max_entries = max(1, int(max_entries))
        self._entries: dict[str, tuple[float, Any]] = {}

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def __len__(self) -> int:
        self._evict_expired(time.monotonic())
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        if self._ttl_seconds <= 0:
            return None
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at <= time.monotonic():
            self._entries.pop(key, None)
            return None
        logger.debug("cache_hit key=%s", key)
        # Callers may mutate what they get back.
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        if self._ttl_seconds <= 0:
            return
        now = time.monotonic()
        self._evict_expired(now)
        if key not in self._entries and len(self._entries) >= self._max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            self._entries.pop(oldest, None)
        self._entries[key] = (now + self._ttl_seconds, copy.deepcopy(value))

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._entries.pop(key, None)

    def flush(self) -> None:
        self._entries.clear()
        logger.info("cache_flushed")

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            self._entries.pop(key, None)


_cache: ResponseCache | None = None


def init_cache() -> ResponseCache:
    global _cache
    if _cache is None:
        _cache = ResponseCache(ttl_seconds=settings.cache_ttl_s())
    return _cache


def close_cache() -> None:
    global _cache
    if _cache is not None:
        _cache.flush()
    _cache = None


def cache() -> ResponseCache:
    if _cache is None:
        raise RuntimeError("Response cache is not initialized. Call init_cache() on startup.")
    return _cache


async def get_cache() -> ResponseCache:
    """
    FastAPI dependency handing the process-wide cache to a handler.
    """
    return cache()
