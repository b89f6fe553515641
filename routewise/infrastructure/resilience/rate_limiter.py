"""Implementation of a rate limiter.

Controls the frequency of outgoing requests so the client stays inside the
remote service's quota. Uses a token bucket: each admitted request consumes
a token, and tokens are added back in whole intervals.
"""

import asyncio
import dataclasses
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIMEOUT_MS = 30000
POLL_INTERVAL_MS = 100


@dataclass
class RateLimiterConfig:
    """Token bucket parameters."""
    capacity: int = 10
    refill_rate: int = 1             # tokens added per interval
    refill_interval_ms: int = 1000
    allow_burst: bool = True         # False caps the bucket at one interval's worth

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError(f"capacity must be positive, got {self.capacity}")
        if self.refill_rate <= 0:
            raise ValueError(f"refill_rate must be positive, got {self.refill_rate}")
        if self.refill_interval_ms <= 0:
            raise ValueError(f"refill_interval_ms must be positive, got {self.refill_interval_ms}")


class RateLimiter:
    """Token bucket rate limiter.

    Refill happens lazily on every acquire and, when an event loop is
    available, from a background task every ``refill_interval_ms``.
    """

    def __init__(
        self,
        config: Optional[RateLimiterConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        auto_refill: bool = True,
    ):
        """Initializes the rate limiter.

        Args:
            config: Bucket parameters. Defaults to 10 tokens, 1 per second.
            clock: Monotonic clock returning seconds.
            auto_refill: Whether to run the background refill task.
        """
        self._config = config or RateLimiterConfig()
        self._clock = clock
        self._auto_refill = auto_refill
        self._lock = threading.Lock()
        self._tokens: float = float(self._max_tokens())
        self._last_refill = clock()
        self._refill_task: Optional[asyncio.Task] = None
        self._closed = False
        self._ensure_refill_task()
        logger.info(
            f"RateLimiter initialized: capacity={self._config.capacity}, "
            f"{self._config.refill_rate} token(s) / {self._config.refill_interval_ms}ms, "
            f"allow_burst={self._config.allow_burst}"
        )

    def _max_tokens(self) -> int:
        if self._config.allow_burst:
            return self._config.capacity
        return min(self._config.capacity, self._config.refill_rate)

    def _refill(self) -> None:
        """Adds whole intervals' worth of tokens. Caller holds the lock.

        The fractional part of an interval is dropped when ``last_refill``
        moves to now.
        """
        now = self._clock()
        elapsed_ms = (now - self._last_refill) * 1000
        interval = self._config.refill_interval_ms
        if elapsed_ms >= interval:
            intervals = int(elapsed_ms // interval)
            self._tokens = min(float(self._max_tokens()), self._tokens + intervals * self._config.refill_rate)
            self._last_refill = now

    def acquire(self, tokens: int = 1) -> bool:
        """Consumes ``tokens`` if available. Never blocks.

        Returns:
            True if the tokens were consumed, False if the bucket is short
            (in which case nothing is consumed).
        """
        self._ensure_refill_task()
        with self._lock:
            self._refill()
            if self._tokens >= tokens:
                self._tokens -= tokens
                logger.debug(f"Acquired {tokens} token(s), {self._tokens:g} remaining.")
                return True
            remaining = self._tokens
        logger.debug(f"Rate limit reached: {tokens} token(s) requested, {remaining:g} available.")
        return False

    async def wait_for_tokens(self, tokens: int = 1, timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS) -> bool:
        """Polls ``acquire`` until it succeeds or ``timeout_ms`` elapses.

        Returns:
            True once the tokens were acquired, False on timeout.
        """
        start = self._clock()
        while (self._clock() - start) * 1000 < timeout_ms:
            if self.acquire(tokens):
                return True
            await asyncio.sleep(POLL_INTERVAL_MS / 1000)
        logger.debug(f"Timed out after {timeout_ms}ms waiting for {tokens} token(s).")
        return False

    def get_token_count(self) -> float:
        with self._lock:
            self._refill()
            return self._tokens

    def reset(self) -> None:
        """Refills the bucket completely and restarts the refill clock."""
        with self._lock:
            self._tokens = float(self._max_tokens())
            self._last_refill = self._clock()
        logger.debug("RateLimiter reset to full capacity.")

    def get_config(self) -> RateLimiterConfig:
        return dataclasses.replace(self._config)

    def update_config(self, **changes: Any) -> None:
        """Merges ``changes`` into the configuration.

        The token count is clamped to the new bucket size and background
        refill is rescheduled with the new interval.
        """
        with self._lock:
            self._config = dataclasses.replace(self._config, **changes)
            self._tokens = min(self._tokens, float(self._max_tokens()))
        logger.info(f"RateLimiter configuration updated: {changes}")
        self._cancel_refill_task()
        self._ensure_refill_task()

    def shutdown(self) -> None:
        """Stops the background refill task."""
        self._closed = True
        self._cancel_refill_task()

    # --- Background refill ---

    def _ensure_refill_task(self) -> None:
        if not self._auto_refill or self._closed:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return  # No loop yet; started on first use inside one.
        task = self._refill_task
        if task is not None and not task.done() and task.get_loop() is loop:
            return
        self._refill_task = loop.create_task(self._refill_loop())

    def _cancel_refill_task(self) -> None:
        task, self._refill_task = self._refill_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _refill_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.refill_interval_ms / 1000)
            with self._lock:
                self._refill()


class MultiRateLimiter:
    """Registry of independent rate limiters, one per key.

    Useful when different operations (or API keys) have separate quotas.
    """

    def __init__(
        self,
        default_config: Optional[RateLimiterConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        auto_refill: bool = True,
    ):
        self._default_config = default_config
        self._clock = clock
        self._auto_refill = auto_refill
        self._limiters: Dict[str, RateLimiter] = {}

    def get_limiter(self, key: str, config: Optional[RateLimiterConfig] = None) -> RateLimiter:
        """Returns the limiter for ``key``, creating it on first use.

        ``config`` only applies when the limiter is created.
        """
        limiter = self._limiters.get(key)
        if limiter is None:
            cfg = config or self._default_config
            limiter = RateLimiter(
                dataclasses.replace(cfg) if cfg else None,
                clock=self._clock,
                auto_refill=self._auto_refill,
            )
            self._limiters[key] = limiter
            logger.debug(f"Created rate limiter for key '{key}'.")
        return limiter

    def acquire(self, key: str, tokens: int = 1) -> bool:
        return self.get_limiter(key).acquire(tokens)

    async def wait_for_tokens(self, key: str, tokens: int = 1, timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS) -> bool:
        return await self.get_limiter(key).wait_for_tokens(tokens, timeout_ms)

    def get_token_count(self, key: str) -> float:
        return self.get_limiter(key).get_token_count()

    def reset_all(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()

    def shutdown_all(self) -> None:
        """Stops every limiter and forgets them."""
        for limiter in self._limiters.values():
            limiter.shutdown()
        self._limiters.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._limiters

    def __len__(self) -> int:
        return len(self._limiters)
