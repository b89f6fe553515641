"""Defines common Value Objects used across the client.

These are the small shapes passed between the orchestrator and its
collaborators: cache keys, HTTP request/response envelopes, and the
operation tags used to namespace cache keys and log lines.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, NewType, Optional

# === Caching Context ===
CacheKey = NewType("CacheKey", str)              # Unique key for a cache entry
CachePrefix = NewType("CachePrefix", str)        # Namespace prepended to every key

CACHE_PREFIX = CachePrefix("routes")


class Operation(str, Enum):
    """The remote operations the client knows how to perform."""
    ROUTE = "route"
    DISTANCE_MATRIX = "matrix"
    SNAP_TO_ROADS = "snap"


# === Transport Context ===

@dataclass
class HttpRequest:
    """Outbound request handed to a Transport."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None


@dataclass
class HttpResponse:
    """Response returned by a Transport."""
    status: int
    body: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
