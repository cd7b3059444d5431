"""Remote source — streams artifacts over HTTP(S) with httpx.

The response is opened in streaming mode: ``resolve`` returns as soon as the
status line and headers are in and the status is a success.  The body is
pulled chunk by chunk while the archive feeder writes the entry, so no
artifact is ever held in memory whole.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import httpx

from streampack.core.errors import HttpStatusError, NetworkError
from streampack.models.targets import RemoteRef, Target
from streampack.sources import ByteStream

logger = logging.getLogger(__name__)


class RemoteSource:
    """Resolves ``RemoteRef`` targets with an ``httpx.AsyncClient``.

    Parameters
    ----------
    client:
        Client to send requests with.  When omitted, one is created on first
        use and closed by :meth:`aclose`.
    timeout:
        Transport-level timeout in seconds for the owned client.  Expiry is
        reported as a ``NetworkError`` like any other transport failure.
    chunk_size:
        Read size for the response body.
    user_agent:
        ``User-Agent`` header for the owned client.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        chunk_size: int = 64 * 1024,
        user_agent: str = "streampack/0.1",
    ) -> None:
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._user_agent = user_agent

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # No connection cap: resolved-but-unconsumed responses hold their
            # connection, and a cap could starve the slot the feeder waits on.
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(self._timeout),
                limits=httpx.Limits(max_connections=None, max_keepalive_connections=20),
                headers={"User-Agent": self._user_agent},
            )
        return self._client

    async def resolve(self, target: Target) -> ByteStream:
        if not isinstance(target.source, RemoteRef):
            raise TypeError(f"RemoteSource cannot resolve {target.source.kind} target {target.name!r}")
        url = target.source.url
        client = self._get_client()

        logger.debug("GET %s for %s", url, target.name)
        try:
            request = client.build_request("GET", url)
            response = await client.send(request, stream=True)
        except httpx.TransportError as exc:
            raise NetworkError(f"{type(exc).__name__} fetching {url}: {exc}") from exc

        if response.is_error:
            await response.aclose()
            raise HttpStatusError(response.status_code, url, response.reason_phrase)

        size = _content_length(response)
        return ByteStream(
            self._iter_body(response, url),
            close=response.aclose,
            size=size,
        )

    async def _iter_body(self, response: httpx.Response, url: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes(self._chunk_size):
                yield chunk
        except httpx.TransportError as exc:
            raise NetworkError(f"{type(exc).__name__} reading {url}: {exc}") from exc
        except httpx.StreamError as exc:
            raise NetworkError(f"Broken response body from {url}: {exc}") from exc

    async def aclose(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def _content_length(response: httpx.Response) -> int | None:
    # Content-Length describes the encoded body; only trust it when the body
    # is not transfer-compressed.
    if response.headers.get("Content-Encoding", "identity") not in ("", "identity"):
        return None
    raw = response.headers.get("Content-Length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
