"""Retry policy for outbound API calls.

Implements exponential backoff with jitter for transient failures: dropped
connections, timeouts and retryable HTTP statuses (429, 5xx). Anything else
propagates on the first failure.
"""

import asyncio
import dataclasses
import logging
import random
import socket
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

from routewise.domain.errors import (
    ErrorKind,
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    ValidationError,
)
from routewise.domain.events import DomainEvent, EventSink, RetryScheduled

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_RATIO = 0.1

# Errors that mean the request never got a usable answer
NETWORK_EXCEPTIONS: Tuple[type, ...] = (
    NetworkError,
    RequestTimeoutError,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)

# Never retried, whatever status they carry
NON_RETRYABLE_EXCEPTIONS: Tuple[type, ...] = (RateLimitedError, ValidationError)


@dataclass
class RetryConfig:
    """Backoff parameters."""
    base_ms: int = 1000
    factor: float = 2
    max_retries: int = 3
    max_delay_ms: Optional[int] = 30000
    retryable_status_codes: Tuple[int, ...] = (429, 500, 502, 503, 504)
    retry_on_network_error: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {self.max_retries}")
        if self.base_ms < 0:
            raise ValueError(f"base_ms must not be negative, got {self.base_ms}")
        if self.max_delay_ms is not None and self.max_delay_ms < 0:
            raise ValueError(f"max_delay_ms must not be negative, got {self.max_delay_ms}")
        self.retryable_status_codes = tuple(self.retryable_status_codes)


@dataclass
class RetryContext:
    """Per-call retry bookkeeping."""
    operation: str
    max_retries: int
    base_ms: int
    factor: float
    max_delay_ms: Optional[int]
    request_id: Optional[str] = None
    attempt: int = 0


def _log_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


class RetryPolicy:
    """Runs an async operation, retrying transient failures with backoff."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the RetryPolicy.

        Args:
            config: Backoff parameters. Defaults to 3 retries starting at 1s.
            sleep: Coroutine function used to wait between attempts (seconds).
            rand: Source of uniform floats in [0, 1) used for jitter.
            event_sink: Receives RetryScheduled events. Defaults to DEBUG logging.
        """
        self._config = config or RetryConfig()
        self._sleep = sleep
        self._rand = rand
        self._event_sink = event_sink or _log_event
        logger.info(
            f"RetryPolicy initialized: max_retries={self._config.max_retries}, "
            f"base={self._config.base_ms}ms, factor={self._config.factor}, "
            f"max_delay={self._config.max_delay_ms}ms"
        )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        operation_name: str = "unknown",
        request_id: Optional[str] = None,
    ) -> T:
        """Awaits ``operation()``, retrying while the failure is retryable.

        Args:
            operation: Zero-argument coroutine function performing one attempt.
            operation_name: Name used in log lines and events.
            request_id: Optional correlation id used in log lines and events.

        Returns:
            The result of the first successful attempt.

        Raises:
            Exception: The first non-retryable error, or the last error once
                ``max_retries`` retries have been spent. Raised unchanged.
        """
        config = self._config
        context = RetryContext(
            operation=operation_name,
            max_retries=config.max_retries,
            base_ms=config.base_ms,
            factor=config.factor,
            max_delay_ms=config.max_delay_ms,
            request_id=request_id,
        )

        while True:
            try:
                return await operation()
            except Exception as e:
                context.attempt += 1
                if not self.is_retryable(e):
                    logger.debug(f"Non-retryable error in {operation_name}: {type(e).__name__}")
                    raise
                if context.attempt > context.max_retries:
                    logger.error(
                        f"Max retries ({context.max_retries}) reached for {operation_name}. "
                        f"Last error: {e}"
                    )
                    raise

                delay_ms = self._delay_for(context)
                logger.warning(
                    f"Retry attempt {context.attempt}/{context.max_retries} for {operation_name} "
                    f"after {delay_ms}ms: {type(e).__name__}: {e}"
                    + (f" (request_id={request_id})" if request_id else "")
                )
                self._event_sink(RetryScheduled(
                    operation=operation_name,
                    attempt_number=context.attempt,
                    delay_ms=delay_ms,
                    error_code=getattr(e, "code", type(e).__name__),
                    request_id=request_id,
                ))
                await self._sleep(delay_ms / 1000)

    def is_retryable(self, error: BaseException) -> bool:
        """Classifies an error by its type and status, never its message."""
        if isinstance(error, NON_RETRYABLE_EXCEPTIONS):
            return False
        if getattr(error, "kind", None) in (ErrorKind.VALIDATION, ErrorKind.RATE_LIMITED):
            return False
        if self._config.retry_on_network_error and isinstance(error, NETWORK_EXCEPTIONS):
            return True
        status = getattr(error, "status", None)
        if isinstance(status, int) and not isinstance(status, bool):
            return status in self._config.retryable_status_codes
        return False

    def compute_delay(self, attempt: int) -> int:
        """Delay in ms before retry number ``attempt`` (1-based), jitter included."""
        config = self._config
        return self._delay_for(RetryContext(
            operation="",
            max_retries=config.max_retries,
            base_ms=config.base_ms,
            factor=config.factor,
            max_delay_ms=config.max_delay_ms,
            attempt=attempt,
        ))

    def _delay_for(self, context: RetryContext) -> int:
        delay = context.base_ms * context.factor ** (context.attempt - 1)
        delay += self._rand() * JITTER_RATIO * delay
        if context.max_delay_ms is not None and delay > context.max_delay_ms:
            return int(context.max_delay_ms)
        return int(delay)

    def get_config(self) -> RetryConfig:
        return dataclasses.replace(self._config)

    def update_config(self, **changes: Any) -> None:
        """Merges ``changes`` into the configuration. Applies to later calls."""
        self._config = dataclasses.replace(self._config, **changes)
        logger.info(f"RetryPolicy configuration updated: {changes}")
