"""Error types raised by the routes client.

Every failure surfaced to callers is a RoutesError subclass tagged with an
ErrorKind and an HTTP-style status, so callers (and the retry policy) can
decide what to do without inspecting message text.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Discriminator for RoutesError subclasses."""
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UPSTREAM = "upstream"


# HTTP status -> error code reported for upstream failures
_STATUS_CODES: Dict[int, str] = {
    400: "INVALID_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    429: "RATE_LIMITED",
    500: "SERVER_ERROR",
    502: "SERVICE_UNAVAILABLE",
    503: "SERVICE_UNAVAILABLE",
    504: "SERVICE_UNAVAILABLE",
}

# Replacement messages for statuses where the upstream text is rarely useful
_STATUS_MESSAGES: Dict[int, str] = {
    401: "Invalid API key or authentication failed",
    403: "API key does not have permission to access this resource",
    429: "Rate limit exceeded. Please try again later",
}


class RoutesError(Exception):
    """Base class for all routes client errors."""

    kind: ErrorKind = ErrorKind.UPSTREAM

    def __init__(
        self,
        message: str,
        code: str,
        status: int = 500,
        meta: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.meta: Dict[str, Any] = dict(meta or {})

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, status={self.status}, message={self.message!r})"


class ValidationError(RoutesError):
    """Raised when request options (or client setup) fail validation."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, {"field": field} if field else None)
        self.field = field


class RateLimitedError(RoutesError):
    """Raised by the client's own admission check when no token is available."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str = "Rate limit exceeded. Please try again later"):
        super().__init__(message, "RATE_LIMITED", 429)


class NetworkError(RoutesError):
    """Connection-level failure: refused, reset, DNS, or similar."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        meta = {"original_error": str(cause)} if cause is not None else None
        super().__init__(message, "NETWORK_ERROR", 0, meta)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class RequestTimeoutError(RoutesError):
    """The outbound call did not settle within the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout_ms: int):
        super().__init__(f"Request timed out after {timeout_ms}ms", "TIMEOUT_ERROR", 408, {"timeout_ms": timeout_ms})
        self.timeout_ms = timeout_ms


class UpstreamError(RoutesError):
    """The remote service answered with an error."""

    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status: int, code: Optional[str] = None, body: Any = None):
        super().__init__(
            message,
            code or code_for_status(status),
            status,
            {"response_body": body} if body is not None else None,
        )
        self.body = body

    @classmethod
    def from_http_response(cls, status: int, message: str, body: Any = None) -> "UpstreamError":
        """Builds an UpstreamError whose code is derived from the HTTP status."""
        return cls(_STATUS_MESSAGES.get(status, message), status, code_for_status(status), body)


def code_for_status(status: int) -> str:
    """Maps an HTTP status to the error code reported to callers."""
    return _STATUS_CODES.get(status, "HTTP_ERROR")
