# src/servicecall/transport/http.py
"""HTTP transport built on httpx.

The transport sends exactly one request and reports what happened: an
immutable Response for anything the server answered (including 4xx/5xx),
or an exception when no response arrived. Classification into retryable
and terminal outcomes is the engine's job, not the transport's.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
import structlog

from servicecall.contracts import Response

if TYPE_CHECKING:
    from servicecall.contracts import Body, HttpMethod

logger = structlog.get_logger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Sends one HTTP request.

    Error handling:
        - send() returns a Response for every status code the server sent
        - send() raises when no response was produced (timeout, connection
          refused, DNS failure); httpx.RequestError is the expected type
        - close() MUST be idempotent
    """

    async def send(
        self,
        method: HttpMethod,
        url: str,
        *,
        headers: Mapping[str, str],
        query: Mapping[str, str] | None,
        body: Body | None,
        timeout: float,
    ) -> Response:
        """Send a request and return the server's response."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...


def _content_kwargs(body: Body | None) -> dict[str, Any]:
    """Map a request body onto httpx keyword arguments."""
    if body is None:
        return {}
    if isinstance(body, bytes | str):
        return {"content": body}
    return {"json": body}


class HttpxTransport:
    """Transport over a shared httpx.AsyncClient.

    One AsyncClient is shared by all logical calls for connection pooling.
    Per-request timeouts override the client default via the timeout kwarg.

    Example:
        transport = HttpxTransport()
        response = await transport.send(
            HttpMethod.GET,
            "http://10.0.0.1:8080/orders/1",
            headers={"Accept": "application/json"},
            query=None,
            body=None,
            timeout=5.0,
        )
    """

    def __init__(
        self,
        *,
        client: httpx.AsyncClient | None = None,
        default_timeout: float = 5.0,
    ) -> None:
        """Initialize transport.

        Args:
            client: Pre-built AsyncClient (caller keeps ownership); a new one is
                created and owned by this transport when None
            default_timeout: Timeout used when constructing an owned client
        """
        self._owns_client = client is None
        # follow_redirects=False: a redirect is a response like any other and is
        # returned to the caller unchanged.
        self._client = client if client is not None else httpx.AsyncClient(timeout=default_timeout, follow_redirects=False)
        self._closed = False

    async def send(
        self,
        method: HttpMethod,
        url: str,
        *,
        headers: Mapping[str, str],
        query: Mapping[str, str] | None,
        body: Body | None,
        timeout: float,
    ) -> Response:
        """Send one request.

        Returns:
            Response for any status code

        Raises:
            httpx.RequestError: For timeouts, network errors and undecodable bodies
        """
        start = time.perf_counter()
        try:
            raw = await self._client.request(
                str(method),
                url,
                headers=dict(headers),
                params=dict(query) if query else None,
                timeout=timeout,
                **_content_kwargs(body),
            )
        except httpx.RequestError as e:
            logger.debug(
                "transport_error",
                method=str(method),
                url=url,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=(time.perf_counter() - start) * 1000,
            )
            raise

        logger.debug(
            "transport_response",
            method=str(method),
            url=url,
            status_code=raw.status_code,
            latency_ms=(time.perf_counter() - start) * 1000,
        )
        return Response(
            status=raw.status_code,
            headers=dict(raw.headers),
            body=raw.content,
            url=str(raw.url),
        )

    async def close(self) -> None:
        """Close the underlying AsyncClient if this transport owns it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await self._client.aclose()
