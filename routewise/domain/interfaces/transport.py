"""Interface for the HTTP transport.

The routes service never talks to the network directly; it hands fully
built requests to a Transport and classifies whatever comes back.
"""

import abc

from ..models.common import HttpRequest, HttpResponse


class Transport(abc.ABC):
    """Abstract Base Class for sending HTTP requests."""

    @abc.abstractmethod
    async def send(self, request: HttpRequest) -> HttpResponse:
        """Sends a request and returns the response, whatever its status.

        Raises:
            NetworkError: If the request could not be delivered
                (connection refused/reset, DNS failure).
            RequestTimeoutError: If the transport's own timeout fired.
        """
        pass
