"""Interface for caching mechanisms.

Defines the contract for storing, retrieving, and managing previously
fetched results with a per-entry time-to-live.
"""

import abc
from dataclasses import dataclass
from typing import Any, Optional

from ..models.common import CacheKey


@dataclass
class CacheStats:
    """Snapshot of a cache's counters."""
    size: int
    hit_count: int
    miss_count: int
    hit_rate: float
    expired_count: int


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves an item from the cache asynchronously.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached item if found and not expired, otherwise None.
        """
        pass

    @abc.abstractmethod
    async def set(self, key: CacheKey, value: Any, ttl_ms: Optional[int] = None) -> None:
        """Stores an item in the cache asynchronously.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl_ms: Time-to-live in milliseconds (uses the cache default if None).
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Deletes an item from the cache asynchronously.

        Args:
            key: The cache key to delete.
        """
        pass

    @abc.abstractmethod
    async def has(self, key: CacheKey) -> bool:
        """Checks whether a live (non-expired) entry exists for the key."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Clears all items (and counters) from the cache asynchronously."""
        pass

    @abc.abstractmethod
    async def get_stats(self) -> CacheStats:
        """Returns hit/miss/expiry counters and the current size."""
        pass

    def shutdown(self) -> None:
        """Releases background resources. No-op for caches that hold none."""
        pass
