"""
Network Fetch Interface.

Protocol-based interface for plain HTTP fetches issued by the client.
The offline cache worker sits between the page and this port.

Key behaviors:
- fetch() returns a FetchResponse for every HTTP answer, including 4xx/5xx
- Transport failures (DNS, refused, timeout) raise NetworkError
- FetchResponse.network_error() is the value form of a failed load,
  handed back to the page instead of raising
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlsplit


@dataclass(frozen=True)
class FetchRequest:
    """A request issued by the page."""

    url: str
    method: str = "GET"
    destination: str = ""  # "audio", "image", "document", ... informational only

    @property
    def path(self) -> str:
        """URL path used for manifest classification ("/" when empty)."""
        return urlsplit(self.url).path or "/"


@dataclass(frozen=True)
class FetchResponse:
    """An HTTP response, live or replayed from cache."""

    url: str
    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    from_cache: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return "application/octet-stream"

    @classmethod
    def network_error(cls, url: str, error: str) -> FetchResponse:
        """Failed resource load (no response could be produced)."""
        return cls(url=url, status=0, error=error)


class NetworkPort(Protocol):
    """Outbound HTTP fetch."""

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        """
        Perform the request against the network.

        Raises:
            NetworkError: If no HTTP response was received
        """
        ...


class NetworkError(Exception):
    """Transport-level fetch failure."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Fetch failed for {url}: {reason}")
