"""Resilience mechanisms: token bucket admission control and retry with backoff."""

from .api_retry import RetryConfig, RetryPolicy
from .rate_limiter import MultiRateLimiter, RateLimiter, RateLimiterConfig

__all__ = ["MultiRateLimiter", "RateLimiter", "RateLimiterConfig", "RetryConfig", "RetryPolicy"]
