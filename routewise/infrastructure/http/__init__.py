"""HTTP transport adapters."""

from .httpx_transport import HttpxTransport

__all__ = ["HttpxTransport"]
