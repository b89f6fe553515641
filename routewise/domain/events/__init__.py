"""Domain Event definitions.

Represents significant occurrences during a request's lifetime that other
parts of the system (logging, metrics, tests) might react to.
"""

from typing import Callable

from .api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallRejected,
    ApiCallSucceeded,
    CacheHit,
    DomainEvent,
    RetryScheduled,
)

EventSink = Callable[[DomainEvent], None]

__all__ = [
    "ApiCallFailed",
    "ApiCallInitiated",
    "ApiCallRejected",
    "ApiCallSucceeded",
    "CacheHit",
    "DomainEvent",
    "EventSink",
    "RetryScheduled",
]
