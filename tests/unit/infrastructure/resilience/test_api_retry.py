import socket
from unittest.mock import AsyncMock

import pytest

from routewise.domain.errors import (
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    UpstreamError,
    ValidationError,
)
from routewise.domain.events import RetryScheduled
from routewise.infrastructure.resilience.api_retry import RetryConfig, RetryPolicy


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def events():
    return []


@pytest.fixture
def policy(sleep, events):
    """Retry policy with no jitter and a recorded (not real) sleep."""
    return RetryPolicy(
        RetryConfig(base_ms=100, factor=2, max_retries=3, max_delay_ms=1000),
        sleep=sleep,
        rand=lambda: 0.0,
        event_sink=events.append,
    )


def failing_then(result, *errors):
    """Operation that raises each error in turn, then returns result."""
    operation = AsyncMock(side_effect=[*errors, result])
    return operation


@pytest.mark.asyncio
async def test_success_on_first_attempt(policy: RetryPolicy, sleep: AsyncMock):
    operation = AsyncMock(return_value="ok")
    assert await policy.execute(operation) == "ok"
    operation.assert_awaited_once()
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_retryable_failures_then_success(policy: RetryPolicy, sleep: AsyncMock, events):
    """N retryable failures then success means N+1 invocations and the backoff sleeps."""
    operation = failing_then(
        "ok",
        UpstreamError.from_http_response(503, "down"),
        NetworkError("reset"),
    )
    assert await policy.execute(operation, operation_name="route", request_id="abc") == "ok"
    assert operation.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]
    assert [e.attempt_number for e in events] == [1, 2]
    assert all(isinstance(e, RetryScheduled) and e.operation == "route" for e in events)
    assert events[0].error_code == "SERVICE_UNAVAILABLE"
    assert events[1].error_code == "NETWORK_ERROR"
    assert events[0].request_id == "abc"


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(policy: RetryPolicy, sleep: AsyncMock):
    error = UpstreamError.from_http_response(500, "boom")
    operation = AsyncMock(side_effect=error)
    with pytest.raises(UpstreamError) as exc_info:
        await policy.execute(operation)
    assert exc_info.value is error
    assert operation.await_count == 4
    assert sleep.await_count == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    ValidationError("bad origin", field="origin"),
    RateLimitedError(),
    UpstreamError.from_http_response(400, "bad request"),
    UpstreamError.from_http_response(401, "denied"),
    ValueError("not a transport problem"),
])
async def test_non_retryable_error_propagates_immediately(policy: RetryPolicy, sleep: AsyncMock, error):
    operation = AsyncMock(side_effect=error)
    with pytest.raises(type(error)) as exc_info:
        await policy.execute(operation)
    assert exc_info.value is error
    operation.assert_awaited_once()
    sleep.assert_not_awaited()


@pytest.mark.parametrize("error", [
    NetworkError("refused"),
    RequestTimeoutError(1000),
    ConnectionResetError(),
    TimeoutError(),
    socket.gaierror(-2, "Name or service not known"),
])
def test_network_errors_are_retryable(policy: RetryPolicy, error):
    assert policy.is_retryable(error) is True


def test_network_errors_not_retried_when_disabled(policy: RetryPolicy):
    policy.update_config(retry_on_network_error=False)
    assert policy.is_retryable(NetworkError("refused")) is False
    assert policy.is_retryable(UpstreamError.from_http_response(502, "bad gateway")) is True


def test_status_classification_ignores_message_text(policy: RetryPolicy):
    assert policy.is_retryable(Exception("status: 503 network timeout")) is False
    assert policy.is_retryable(UpstreamError("anything", 429)) is True
    assert policy.is_retryable(UpstreamError("anything", 404)) is False


def test_rate_limited_error_never_retried_even_with_429(policy: RetryPolicy):
    assert RateLimitedError().status == 429
    assert policy.is_retryable(RateLimitedError()) is False


def test_compute_delay_without_jitter(policy: RetryPolicy):
    assert [policy.compute_delay(n) for n in range(1, 6)] == [100, 200, 400, 800, 1000]


def test_compute_delay_jitter_bounds():
    policy = RetryPolicy(RetryConfig(base_ms=1000, max_delay_ms=None), rand=lambda: 0.999)
    delay = policy.compute_delay(1)
    assert 1000 <= delay < 1100
    assert delay == 1099


def test_compute_delay_caps_jittered_value():
    policy = RetryPolicy(RetryConfig(base_ms=1000, max_delay_ms=1050), rand=lambda: 0.9)
    assert policy.compute_delay(1) == 1050


def test_zero_max_delay_is_a_cap_not_unlimited():
    policy = RetryPolicy(RetryConfig(base_ms=1000, max_delay_ms=0), rand=lambda: 0.5)
    assert [policy.compute_delay(n) for n in range(1, 4)] == [0, 0, 0]


def test_negative_max_delay_rejected():
    with pytest.raises(ValueError):
        RetryConfig(max_delay_ms=-1)


def test_update_config_applies_to_later_calls(policy: RetryPolicy):
    policy.update_config(max_retries=0, base_ms=5)
    config = policy.get_config()
    assert config.max_retries == 0
    assert config.base_ms == 5
    assert config.factor == 2


def test_get_config_returns_copy(policy: RetryPolicy):
    policy.get_config().max_retries = 99
    assert policy.get_config().max_retries == 3


@pytest.mark.asyncio
async def test_zero_retries_means_single_attempt(sleep: AsyncMock):
    policy = RetryPolicy(RetryConfig(max_retries=0), sleep=sleep)
    operation = AsyncMock(side_effect=NetworkError("down"))
    with pytest.raises(NetworkError):
        await policy.execute(operation)
    operation.assert_awaited_once()
    sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_total_sleep_at_least_unjittered_delays():
    """With real jitter the total wait is never below the un-jittered capped sum."""
    waits = []

    async def record(seconds):
        waits.append(seconds)

    policy = RetryPolicy(RetryConfig(base_ms=10, factor=3, max_retries=3, max_delay_ms=50), sleep=record)
    operation = failing_then("ok", NetworkError("a"), NetworkError("b"), NetworkError("c"))
    assert await policy.execute(operation) == "ok"
    assert sum(waits) * 1000 >= 10 + 30 + 50 - 1e-9
