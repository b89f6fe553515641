"""Core service orchestrating calls to the mapping API.

Sequences the resilience mechanisms around every outbound call:

    validate -> cache lookup -> admission (rate limiter) -> retrying
    transport call -> cache population

The rate limiter, retry policy and cache know nothing about each other;
this service is the only place they meet.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Optional, TypeVar

from routewise.core.cache_keys import (
    distance_matrix_cache_key,
    route_cache_key,
    snap_to_roads_cache_key,
)
from routewise.domain.errors import (
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    RoutesError,
    UpstreamError,
    ValidationError,
)
from routewise.domain.events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallRejected,
    ApiCallSucceeded,
    CacheHit,
    DomainEvent,
    EventSink,
)
from routewise.domain.interfaces.cache import CacheService, CacheStats
from routewise.domain.interfaces.transport import Transport
from routewise.domain.models.common import CacheKey, HttpRequest, HttpResponse, Operation
from routewise.domain.models.routes import (
    DistanceMatrixResult,
    RouteResult,
    SnapToRoadsResult,
)
from routewise.infrastructure.maps.google_api import (
    DEFAULT_BASE_URL,
    DEFAULT_ROADS_BASE_URL,
    GoogleMapsApi,
    extract_error_message,
    parse_distance_matrix_response,
    parse_route_response,
    parse_snap_to_roads_response,
    response_summary,
)
from routewise.infrastructure.resilience.api_retry import RetryConfig, RetryPolicy
from routewise.infrastructure.resilience.rate_limiter import RateLimiter, RateLimiterConfig
from routewise.infrastructure.validation.validators import (
    validate_distance_matrix_options,
    validate_get_route_options,
    validate_snap_to_roads_options,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000

R = TypeVar("R")


def _log_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


class RoutesService:
    """Resilient client for the route, distance matrix and snap-to-roads operations."""

    def __init__(
        self,
        transport: Transport,
        api_key: str,
        cache: Optional[CacheService] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        base_url: str = DEFAULT_BASE_URL,
        roads_base_url: str = DEFAULT_ROADS_BASE_URL,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the RoutesService.

        Args:
            transport: Sends the built HTTP requests.
            api_key: Key appended to every request.
            cache: Result cache. None disables caching.
            rate_limiter: Admission control. Defaults to RateLimiterConfig().
            retry_policy: Retry behaviour. Defaults to RetryConfig().
            base_url: Base URL of the Directions / Distance Matrix APIs.
            roads_base_url: Base URL of the Roads API.
            timeout_ms: Upper bound on each individual transport call.
            event_sink: Receives domain events. Defaults to DEBUG logging.

        Raises:
            ValidationError: If the transport or API key is missing.
        """
        if transport is None:
            raise ValidationError("A transport is required", field="transport")
        if not isinstance(api_key, str) or not api_key.strip():
            raise ValidationError("API key is required", field="api_key")

        self._event_sink = event_sink or _log_event
        self.transport = transport
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter(RateLimiterConfig())
        self.retry_policy = retry_policy or RetryPolicy(RetryConfig(), event_sink=self._event_sink)
        self.api = GoogleMapsApi(api_key, base_url, roads_base_url)
        self.timeout_ms = timeout_ms
        self._closed = False
        logger.info(
            f"RoutesService initialized (cache={'on' if cache is not None else 'off'}, "
            f"timeout={timeout_ms}ms, base_url={self.api.base_url})"
        )

    # --- Operations ---

    async def get_route(
        self,
        options: Any,
        *,
        bypass_cache: bool = False,
        force_refresh: bool = False,
        ttl_ms: Optional[int] = None,
    ) -> RouteResult:
        """Looks up directions between two locations.

        Args:
            options: A GetRouteOptions or an equivalent mapping.
            bypass_cache: Neither read nor write the cache for this call.
            force_refresh: Skip the cache read but store the fresh result.
            ttl_ms: TTL for the stored result (cache default if None).

        Raises:
            ValidationError: Invalid options. Raised before any other step.
            RateLimitedError: No token available. Not retried.
            NetworkError, RequestTimeoutError, UpstreamError: The call failed
                after retries.
        """
        opts = validate_get_route_options(options)
        return await self._execute(
            Operation.ROUTE,
            route_cache_key(opts),
            self.api.build_route_request(opts),
            parse_route_response,
            bypass_cache=bypass_cache,
            force_refresh=force_refresh,
            ttl_ms=ttl_ms,
        )

    async def get_distance_matrix(
        self,
        options: Any,
        *,
        bypass_cache: bool = False,
        force_refresh: bool = False,
        ttl_ms: Optional[int] = None,
    ) -> DistanceMatrixResult:
        """Looks up travel distance and time for every origin/destination pair.

        Takes the same keyword flags as ``get_route``.
        """
        opts = validate_distance_matrix_options(options)
        return await self._execute(
            Operation.DISTANCE_MATRIX,
            distance_matrix_cache_key(opts),
            self.api.build_distance_matrix_request(opts),
            parse_distance_matrix_response,
            bypass_cache=bypass_cache,
            force_refresh=force_refresh,
            ttl_ms=ttl_ms,
        )

    async def snap_to_roads(
        self,
        options: Any,
        *,
        bypass_cache: bool = False,
        force_refresh: bool = False,
        ttl_ms: Optional[int] = None,
    ) -> SnapToRoadsResult:
        """Snaps a GPS trace to the most likely roads travelled.

        Takes the same keyword flags as ``get_route``.
        """
        opts = validate_snap_to_roads_options(options)
        return await self._execute(
            Operation.SNAP_TO_ROADS,
            snap_to_roads_cache_key(opts),
            self.api.build_snap_to_roads_request(opts),
            parse_snap_to_roads_response,
            bypass_cache=bypass_cache,
            force_refresh=force_refresh,
            ttl_ms=ttl_ms,
        )

    async def _execute(
        self,
        operation: Operation,
        key: CacheKey,
        request: HttpRequest,
        parse: Callable[[Any, int], R],
        *,
        bypass_cache: bool,
        force_refresh: bool,
        ttl_ms: Optional[int],
    ) -> R:
        op = operation.value
        request_id = uuid.uuid4().hex[:12]

        # 1. Cache lookup
        if self.cache is not None and not (bypass_cache or force_refresh):
            cached = await self.cache.get(key)
            if cached is not None:
                logger.debug(f"Serving {op} from cache: {key}")
                self._emit(CacheHit(operation=op, cache_key=key))
                return cached

        # 2. Admission control
        if not self.rate_limiter.acquire(1):
            remaining = self.rate_limiter.get_token_count()
            logger.warning(f"Rejected {op} request {request_id}: rate limit reached ({remaining:g} tokens left)")
            self._emit(ApiCallRejected(operation=op, tokens_remaining=remaining, request_id=request_id))
            raise RateLimitedError()

        # 3. Remote call with retries
        async def attempt() -> R:
            self._emit(ApiCallInitiated(operation=op, request_id=request_id))
            response = await self._send(request)
            if response.status >= 400:
                raise UpstreamError.from_http_response(
                    response.status, extract_error_message(response.body), response.body
                )
            return parse(response.body, response.status)

        start_time = time.perf_counter()
        try:
            result = await self.retry_policy.execute(attempt, operation_name=op, request_id=request_id)
        except Exception as e:
            logger.error(f"{op} request {request_id} failed: {e}")
            self._emit(ApiCallFailed(
                operation=op,
                error_code=getattr(e, "code", type(e).__name__),
                error_message=str(e),
                status=getattr(e, "status", 0),
                request_id=request_id,
            ))
            raise
        latency_ms = (time.perf_counter() - start_time) * 1000

        # 4. Cache population
        if self.cache is not None and not bypass_cache:
            await self.cache.set(key, result, ttl_ms)

        logger.debug(f"{op} request {request_id} succeeded in {latency_ms:.0f}ms: {response_summary(result)}")
        self._emit(ApiCallSucceeded(operation=op, latency_ms=latency_ms, request_id=request_id))
        return result

    async def _send(self, request: HttpRequest) -> HttpResponse:
        """One transport call bounded by ``timeout_ms``.

        Socket-level failures (``OSError`` and its subclasses) become
        NetworkError; anything else the transport raises propagates as is,
        and is therefore not retried.
        """
        try:
            return await asyncio.wait_for(self.transport.send(request), timeout=self.timeout_ms / 1000)
        except RoutesError:
            raise
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(self.timeout_ms) from e
        except OSError as e:
            raise NetworkError(str(e) or type(e).__name__, cause=e) from e

    def _emit(self, event: DomainEvent) -> None:
        self._event_sink(event)

    # --- Cache management ---

    async def invalidate_route(self, options: Any) -> None:
        await self._invalidate(route_cache_key(validate_get_route_options(options)))

    async def invalidate_distance_matrix(self, options: Any) -> None:
        await self._invalidate(distance_matrix_cache_key(validate_distance_matrix_options(options)))

    async def invalidate_snap_to_roads(self, options: Any) -> None:
        await self._invalidate(snap_to_roads_cache_key(validate_snap_to_roads_options(options)))

    async def _invalidate(self, key: CacheKey) -> None:
        if self.cache is not None:
            await self.cache.delete(key)
            logger.debug(f"Invalidated cache entry {key}")

    async def get_cache_stats(self) -> Optional[CacheStats]:
        """Cache counters, or None when caching is disabled."""
        if self.cache is None:
            return None
        return await self.cache.get_stats()

    async def clear_cache(self) -> None:
        if self.cache is not None:
            await self.cache.clear()

    # --- Resilience configuration ---

    def get_retry_config(self) -> RetryConfig:
        return self.retry_policy.get_config()

    def update_retry_config(self, **changes: Any) -> None:
        self.retry_policy.update_config(**changes)

    def get_rate_limiter_config(self) -> RateLimiterConfig:
        return self.rate_limiter.get_config()

    def update_rate_limiter_config(self, **changes: Any) -> None:
        self.rate_limiter.update_config(**changes)

    def get_token_count(self) -> float:
        return self.rate_limiter.get_token_count()

    def reset_rate_limiter(self) -> None:
        self.rate_limiter.reset()

    # --- Lifecycle ---

    async def shutdown(self) -> None:
        """Stops background tasks and closes the transport. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.rate_limiter.shutdown()
        if self.cache is not None:
            self.cache.shutdown()
        aclose: Optional[Callable[[], Awaitable[Any]]] = getattr(self.transport, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info("RoutesService shut down.")

    async def __aenter__(self) -> "RoutesService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()
