"""
Generic in-memory cache with per-entry TTL, LRU eviction and hit/miss stats.
Thread-safe; a background asyncio task sweeps expired entries.
Can be replaced with Redis adapter for production.
"""
import asyncio
import contextlib
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from threading import Lock
from typing import Generic, Optional, TypeVar

from app.models.schemas import CacheStats

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheInterface(ABC, Generic[T]):
    """Abstract interface for cache implementations."""

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        """Get value by key, returns None if not found or expired."""
        pass

    @abstractmethod
    def set(self, key: str, value: T, ttl_seconds: Optional[float] = None) -> None:
        """Set value with optional TTL."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key, returns True if existed."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all entries."""
        pass

    @abstractmethod
    def get_stats(self) -> CacheStats:
        """Hit/miss counters and current size."""
        pass


class CacheItem(Generic[T]):
    """Single cache entry with expiration and access tracking."""

    __slots__ = ("value", "created_at", "ttl", "access_count", "last_accessed")

    def __init__(self, value: T, ttl: float) -> None:
        now = time.time()
        self.value = value
        self.created_at = now
        self.ttl = ttl
        self.access_count = 0
        self.last_accessed = now

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if entry has outlived its TTL."""
        now = time.time() if now is None else now
        return now - self.created_at > self.ttl

    def touch(self) -> None:
        self.access_count += 1
        self.last_accessed = time.time()


class InMemoryCache(CacheInterface[T]):
    """
    Thread-safe in-memory cache with TTL, LRU eviction and statistics.

    Entries are kept in access order, so the first entry is always the
    least recently accessed one.

    Usage:
        cache: CacheInterface[Property] = InMemoryCache(max_size=500)
        cache.start()  # inside a running event loop
        cache.set("property:villa-42", prop, ttl_seconds=1800)
        ...
        await cache.stop()
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl_seconds: float = 3600,
        sweep_interval_seconds: float = 300,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._store: "OrderedDict[str, CacheItem[T]]" = OrderedDict()
        self._max_size = max_size
        self._default_ttl = default_ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._hits = 0
        self._misses = 0
        self._lock = Lock()
        self._sweep_task: Optional["asyncio.Task[None]"] = None

    @property
    def max_size(self) -> int:
        return self._max_size

    def get(self, key: str) -> Optional[T]:
        """Get value by key, returns None if not found or expired."""
        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._misses += 1
                return None
            if item.is_expired():
                del self._store[key]
                self._misses += 1
                return None

            item.touch()
            self._store.move_to_end(key)
            self._hits += 1
            return item.value

    def set(self, key: str, value: T, ttl_seconds: Optional[float] = None) -> None:
        """Set value with optional TTL, evicting the LRU entry when full."""
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        with self._lock:
            if key in self._store:
                del self._store[key]
            elif len(self._store) >= self._max_size:
                self._evict_lru()
            self._store[key] = CacheItem(value, ttl)

    def delete(self, key: str) -> bool:
        """Delete key, returns True if existed."""
        with self._lock:
            if key in self._store:
                del self._store[key]
                return True
            return False

    def clear(self) -> None:
        """Clear all entries and reset statistics."""
        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._store),
                hit_rate=self._hits / total if total > 0 else 0.0,
            )

    def size(self) -> int:
        """Return number of entries (including possibly expired)."""
        with self._lock:
            return len(self._store)

    def cleanup_expired(self) -> int:
        """Remove expired entries, return count removed."""
        now = time.time()
        with self._lock:
            expired_keys = [k for k, v in self._store.items() if v.is_expired(now)]
            for key in expired_keys:
                del self._store[key]
        return len(expired_keys)

    def _evict_lru(self) -> None:
        # Caller holds the lock
        key, _ = self._store.popitem(last=False)
        logger.debug(f"Evicted least recently used cache entry: {key}")

    # -------------------------------------------------------------------------
    # Background sweep
    # -------------------------------------------------------------------------

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Schedule the periodic expiry sweep on the running event loop."""
        if self.is_sweeping:
            return
        loop = asyncio.get_running_loop()
        self._sweep_task = loop.create_task(self._sweep_loop())
        logger.info(f"Cache sweep started (interval={self._sweep_interval}s)")

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Cache sweep stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            removed = self.cleanup_expired()
            if removed:
                logger.debug(f"Cache sweep removed {removed} expired entries")
