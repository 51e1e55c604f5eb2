"""
Cache Backends

String key/value stores with per-key TTL. Redis is used when REDIS_URL is
configured; otherwise an in-process store serves a single instance.

Backends raise on failure. Callers that must fail open (the slot cache)
catch and absorb the errors themselves.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import redis.asyncio as redis

from ..config import CacheSettings

logger = logging.getLogger(__name__)

DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_HEALTH_CHECK_SECONDS = 30


class CacheBackend(ABC):
    """Async string cache."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    async def delete(self, *keys: str) -> None:
        ...

    async def close(self) -> None:
        return None


class RedisCacheBackend(CacheBackend):
    """redis.asyncio client over a bounded connection pool."""

    def __init__(self, url: str, max_connections: int = 20):
        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            socket_connect_timeout=DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS,
            socket_timeout=DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS,
            health_check_interval=DEFAULT_REDIS_HEALTH_CHECK_SECONDS,
            retry_on_timeout=True,
            decode_responses=True,
        )
        self._client = redis.Redis(connection_pool=pool)

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.set(key, value, ex=ttl_seconds)

    async def delete(self, *keys: str) -> None:
        if keys:
            await self._client.delete(*keys)

    async def close(self) -> None:
        await self._client.aclose()


@dataclass
class _Entry:
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryCacheBackend(CacheBackend):
    """TTL dictionary guarded by an asyncio lock. Per-process only."""

    def __init__(self, max_entries: int = 10000):
        self._entries: Dict[str, _Entry] = {}
        self._lock = asyncio.Lock()
        self._max_entries = max_entries

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(time.monotonic()):
                del self._entries[key]
                return None
            return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            now = time.monotonic()
            if len(self._entries) >= self._max_entries and key not in self._entries:
                self._evict(now)
            self._entries[key] = _Entry(value=value, expires_at=now + ttl_seconds)

    async def delete(self, *keys: str) -> None:
        async with self._lock:
            for key in keys:
                self._entries.pop(key, None)

    def _evict(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if len(self._entries) >= self._max_entries:
            # Oldest expiry goes first
            oldest = min(self._entries, key=lambda k: self._entries[k].expires_at)
            del self._entries[oldest]


def create_cache_backend(settings: CacheSettings) -> CacheBackend:
    if settings.redis_url:
        logger.info("Slot cache: Redis backend")
        return RedisCacheBackend(settings.redis_url, settings.max_connections)
    logger.info("Slot cache: in-memory backend (REDIS_URL not set)")
    return MemoryCacheBackend()
