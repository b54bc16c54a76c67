"""HTTP transport for the remote keyed document store."""

import logging
from typing import Protocol, runtime_checkable

import httpx

from ..errors import TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class RemoteTransport(Protocol):
    """GET/PUT/DELETE against absolute document URLs.

    Implementations raise TransportError on any failure.
    """

    async def get(self, url: str) -> bytes: ...

    async def put(self, url: str, body: bytes) -> None: ...

    async def delete(self, url: str) -> None: ...


class HttpTransport:
    """RemoteTransport backed by a shared httpx.AsyncClient.

    Non-2xx responses are failures. No retries are attempted here.
    """

    def __init__(self, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        """Initialize the transport.

        Args:
            timeout: Request timeout in seconds.
            client: Optional preconfigured client (mainly for tests).
        """
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, url: str, content: bytes | None = None
    ) -> httpx.Response:
        client = await self._get_client()

        headers = {"Content-Type": "application/json"} if content is not None else None
        try:
            response = await client.request(method, url, content=content, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {url} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if not response.is_success:
            raise TransportError(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    async def get(self, url: str) -> bytes:
        response = await self._request("GET", url)
        return response.content

    async def put(self, url: str, body: bytes) -> None:
        await self._request("PUT", url, content=body)

    async def delete(self, url: str) -> None:
        await self._request("DELETE", url)
