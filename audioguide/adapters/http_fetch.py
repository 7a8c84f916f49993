"""
HTTP Network Adapter.

Implements NetworkPort with httpx. Relative request URLs ("/index.html")
are resolved against the configured origin.

Key behaviors:
- Every HTTP answer (any status) becomes a FetchResponse
- Transport errors and timeouts raise NetworkError
- A fresh AsyncClient per fetch keeps the adapter usable from any event loop
"""

from __future__ import annotations

import logging

import httpx

from audioguide.core.ports.network import FetchRequest, FetchResponse, NetworkError

logger = logging.getLogger(__name__)


class HttpxNetwork:
    """httpx-backed fetcher."""

    def __init__(
        self,
        origin: str,
        *,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            origin: Base URL for relative request paths
            timeout_seconds: Per-request timeout
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._origin = origin.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        async with httpx.AsyncClient(
            base_url=self._origin,
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            try:
                response = await client.request(request.method, request.url)
            except httpx.HTTPError as e:
                logger.debug("Network fetch failed for %s: %s", request.url, e)
                raise NetworkError(request.url, str(e) or type(e).__name__) from e

        return FetchResponse(
            url=str(response.url),
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )
