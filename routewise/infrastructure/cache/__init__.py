"""In-memory cache implementing the CacheService port.

Bounded Context: Cache Management
"""

from .caching_service import CacheConfig, InMemoryCache

__all__ = ["CacheConfig", "InMemoryCache"]
