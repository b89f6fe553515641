"""routewise: a resilient client for the Google Maps routing web services.

Wraps the Directions, Distance Matrix and Roads APIs with token bucket
rate limiting, retry with exponential backoff, and a TTL result cache.
"""

from routewise.__version__ import __version__
from routewise.core.services.routes_service import RoutesService
from routewise.domain.errors import (
    ErrorKind,
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    RoutesError,
    UpstreamError,
    ValidationError,
)
from routewise.domain.models.routes import (
    DistanceMatrixOptions,
    DistanceMatrixResult,
    GetRouteOptions,
    LatLng,
    RouteResult,
    SnapToRoadsOptions,
    SnapToRoadsResult,
    TravelMode,
)
from routewise.infrastructure.cache.caching_service import CacheConfig, InMemoryCache
from routewise.infrastructure.http.httpx_transport import HttpxTransport
from routewise.infrastructure.resilience.api_retry import RetryConfig, RetryPolicy
from routewise.infrastructure.resilience.rate_limiter import (
    MultiRateLimiter,
    RateLimiter,
    RateLimiterConfig,
)

__all__ = [
    "__version__",
    "CacheConfig",
    "DistanceMatrixOptions",
    "DistanceMatrixResult",
    "ErrorKind",
    "GetRouteOptions",
    "HttpxTransport",
    "InMemoryCache",
    "LatLng",
    "MultiRateLimiter",
    "NetworkError",
    "RateLimitedError",
    "RateLimiter",
    "RateLimiterConfig",
    "RequestTimeoutError",
    "RetryConfig",
    "RetryPolicy",
    "RouteResult",
    "RoutesError",
    "RoutesService",
    "SnapToRoadsOptions",
    "SnapToRoadsResult",
    "TravelMode",
    "UpstreamError",
    "ValidationError",
]
