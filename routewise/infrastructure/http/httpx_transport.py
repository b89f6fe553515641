"""Transport implementation backed by httpx.AsyncClient."""

import logging
from typing import Any, Optional

import httpx

from routewise.domain.errors import NetworkError, RequestTimeoutError
from routewise.domain.interfaces.transport import Transport
from routewise.domain.models.common import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000


def _is_json(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


class HttpxTransport(Transport):
    """Sends HttpRequests with an httpx.AsyncClient.

    Non-2xx responses are returned, not raised; the routes service decides
    what a status means.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ):
        """Initializes the transport.

        Args:
            client: Client to send with. When omitted the transport creates
                one and closes it in ``aclose``.
            timeout_ms: Timeout applied to clients the transport creates.
        """
        self._owns_client = client is None
        self.timeout_ms = timeout_ms
        self.client = client or httpx.AsyncClient(timeout=timeout_ms / 1000)
        logger.info(f"HttpxTransport initialized (timeout={timeout_ms}ms, owns_client={self._owns_client})")

    async def send(self, request: HttpRequest) -> HttpResponse:
        kwargs: dict = {"headers": request.headers}
        if request.body is not None:
            if isinstance(request.body, (str, bytes)):
                kwargs["content"] = request.body
            else:
                kwargs["json"] = request.body

        try:
            response = await self.client.request(request.method, request.url, **kwargs)
        except httpx.TimeoutException as e:
            logger.debug(f"{request.method} {_redact(request.url)} timed out: {e}")
            raise RequestTimeoutError(self.timeout_ms) from e
        except httpx.TransportError as e:
            logger.debug(f"{request.method} {_redact(request.url)} failed: {type(e).__name__}: {e}")
            raise NetworkError(str(e) or type(e).__name__, cause=e) from e

        logger.debug(f"{request.method} {_redact(request.url)} -> {response.status_code}")
        return HttpResponse(
            status=response.status_code,
            body=self._decode_body(response),
            headers=dict(response.headers),
        )

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if _is_json(response.headers.get("content-type", "")):
            try:
                return response.json()
            except ValueError:
                logger.warning("Response declared JSON but could not be decoded; returning text.")
        return response.text

    async def aclose(self) -> None:
        """Closes the underlying client if this transport created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


def _redact(url: str) -> str:
    """Hides the API key in URLs written to logs."""
    parsed = httpx.URL(url)
    if "key" not in parsed.params:
        return url
    return str(parsed.copy_set_param("key", "REDACTED"))
