"""In-memory implementation of the CacheService port.

Entries carry a fixed time-to-live set at insertion. When the store is full
the entry inserted earliest is evicted (oldest-first, not LRU), and a
background sweep periodically drops entries that expired without being read.
"""

import asyncio
import dataclasses
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from routewise.domain.interfaces.cache import CacheService, CacheStats
from routewise.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000  # 5 minutes
DEFAULT_MAX_ENTRIES = 1000
DEFAULT_CLEANUP_INTERVAL_MS = 30 * 1000


@dataclass
class CacheConfig:
    default_ttl_ms: int = DEFAULT_TTL_MS
    max_entries: int = DEFAULT_MAX_ENTRIES
    enable_stats: bool = True

    def __post_init__(self) -> None:
        if self.default_ttl_ms <= 0:
            raise ValueError(f"default_ttl_ms must be positive, got {self.default_ttl_ms}")
        if self.max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {self.max_entries}")


@dataclass
class CacheEntry:
    """Internal representation of a cache entry with expiry."""
    key: CacheKey
    value: Any
    created_at: float  # clock reading at insertion
    expires_at: float  # created_at + ttl, never updated


class InMemoryCache(CacheService):
    """Bounded TTL cache kept in a single process."""

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        cleanup_interval_ms: int = DEFAULT_CLEANUP_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initializes the cache.

        Args:
            config: TTL, size bound and stats switch.
            cleanup_interval_ms: Period of the background expiry sweep.
            clock: Monotonic clock returning seconds.
        """
        self._config = config or CacheConfig()
        self._cleanup_interval_ms = cleanup_interval_ms
        self._clock = clock
        # Ordered by created_at: re-setting a key moves it to the end
        self._store: "OrderedDict[CacheKey, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._hit_count = 0
        self._miss_count = 0
        self._expired_count = 0
        self._sweep_task: Optional[asyncio.Task] = None
        self._closed = False
        self._ensure_sweep_task()
        logger.info(
            f"InMemoryCache initialized (ttl={self._config.default_ttl_ms}ms, "
            f"max={self._config.max_entries}, stats={self._config.enable_stats})"
        )

    # --- CacheService Interface Implementation ---

    async def get(self, key: CacheKey) -> Optional[Any]:
        self._ensure_sweep_task()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._count_miss()
                logger.debug(f"Cache miss: {key}")
                return None
            if self._clock() > entry.expires_at:
                del self._store[key]
                self._count_expired()
                self._count_miss()
                logger.debug(f"Cache entry expired: {key}")
                return None
            self._count_hit()
        logger.debug(f"Cache hit: {key}")
        return entry.value

    async def set(self, key: CacheKey, value: Any, ttl_ms: Optional[int] = None) -> None:
        ttl = self._config.default_ttl_ms if ttl_ms is None else ttl_ms
        if ttl <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl}")
        self._ensure_sweep_task()
        with self._lock:
            if key not in self._store and len(self._store) >= self._config.max_entries:
                self._evict_oldest()
            now = self._clock()
            self._store[key] = CacheEntry(key=key, value=value, created_at=now, expires_at=now + ttl / 1000)
            self._store.move_to_end(key)
        logger.debug(f"Cache set: {key} (ttl={ttl}ms)")

    async def delete(self, key: CacheKey) -> None:
        with self._lock:
            removed = self._store.pop(key, None)
        if removed is not None:
            logger.debug(f"Cache delete: {key}")

    async def has(self, key: CacheKey) -> bool:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if self._clock() > entry.expires_at:
                del self._store[key]
                self._count_expired()
                return False
            return True

    async def clear(self) -> None:
        with self._lock:
            self._store.clear()
            if self._config.enable_stats:
                self._hit_count = self._miss_count = self._expired_count = 0
        logger.info("Cache cleared.")

    async def get_stats(self) -> CacheStats:
        with self._lock:
            total = self._hit_count + self._miss_count
            return CacheStats(
                size=len(self._store),
                hit_count=self._hit_count,
                miss_count=self._miss_count,
                hit_rate=self._hit_count / total if total > 0 else 0.0,
                expired_count=self._expired_count,
            )

    def shutdown(self) -> None:
        """Stops the background sweep and drops every entry."""
        self._closed = True
        self._cancel_sweep_task()
        with self._lock:
            self._store.clear()
        logger.debug("InMemoryCache shut down.")

    # --- Introspection and configuration ---

    @property
    def size(self) -> int:
        return len(self._store)

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._store.keys())

    def get_config(self) -> CacheConfig:
        return dataclasses.replace(self._config)

    def update_config(self, **changes: Any) -> None:
        """Merges ``changes`` into the configuration.

        Shrinking ``max_entries`` evicts the oldest entries down to the new
        bound. The background sweep is restarted.
        """
        with self._lock:
            self._config = dataclasses.replace(self._config, **changes)
            while len(self._store) > self._config.max_entries:
                self._evict_oldest()
        logger.info(f"Cache configuration updated: {changes}")
        self._cancel_sweep_task()
        self._ensure_sweep_task()

    def cleanup_expired(self) -> int:
        """Removes every expired entry. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, entry in self._store.items() if now > entry.expires_at]
            for k in expired:
                del self._store[k]
                self._count_expired()
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries.")
        return len(expired)

    # --- Internals (caller holds the lock) ---

    def _evict_oldest(self) -> None:
        oldest_key, _ = self._store.popitem(last=False)
        logger.debug(f"Cache full, evicted oldest entry: {oldest_key}")

    def _count_hit(self) -> None:
        if self._config.enable_stats:
            self._hit_count += 1

    def _count_miss(self) -> None:
        if self._config.enable_stats:
            self._miss_count += 1

    def _count_expired(self) -> None:
        if self._config.enable_stats:
            self._expired_count += 1

    # --- Background sweep ---

    def _ensure_sweep_task(self) -> None:
        if self._closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = self._sweep_task
        if task is not None and not task.done() and task.get_loop() is loop:
            return
        self._sweep_task = loop.create_task(self._sweep_loop())

    def _cancel_sweep_task(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval_ms / 1000)
            self.cleanup_expired()
