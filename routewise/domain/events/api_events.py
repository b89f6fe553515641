"""Domain Events related to outbound API calls and resilience.

Emitted by the routes service and the retry policy when calls are served
from cache, rejected by admission control, retried, succeed or fail.
"""

import time
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class CacheHit(DomainEvent):
    """Event triggered when a request is answered from the cache."""
    operation: str  # e.g., 'route', 'matrix', 'snap'
    cache_key: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when an admitted call is about to reach the transport."""
    operation: str
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call succeeds (possibly after retries)."""
    operation: str
    latency_ms: float
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails definitively (after retries)."""
    operation: str
    error_code: str
    error_message: str
    status: int = 0
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallRejected(DomainEvent):
    """Event triggered when admission control refuses a call."""
    operation: str
    tokens_remaining: float
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled for a failed API call."""
    operation: str
    attempt_number: int
    delay_ms: int
    error_code: str
    request_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
