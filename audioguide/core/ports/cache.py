"""
Offline Cache Storage Interface.

Protocol-based interface for named response caches (the CacheStorage
analog). Each cache holds URL -> FetchResponse entries; one cache per
generation, named "<prefix>-<version_tag>".

Implementations:
- InMemoryCacheStorage: process memory
- FileCacheStorage: directory per cache, .bin + .meta.json per entry

Invariants:
- Entries are keyed by normalized URL; put() replaces an existing entry
- Errors raise CacheStorageError; callers treat caching as best effort
"""

from __future__ import annotations

from typing import Protocol

from audioguide.core.ports.network import FetchResponse


class CachePort(Protocol):
    """A single named cache."""

    @property
    def name(self) -> str:
        ...

    async def match(self, url: str) -> FetchResponse | None:
        """Return the stored response for url, or None."""
        ...

    async def put(self, url: str, response: FetchResponse) -> None:
        """
        Store a response under url.

        Raises:
            QuotaExceededError: If the storage quota would be exceeded
            CacheStorageError: On any other storage failure
        """
        ...

    async def delete(self, url: str) -> bool:
        """Remove url. Returns True if an entry was removed."""
        ...

    async def keys(self) -> list[str]:
        """List stored URLs."""
        ...


class CacheStoragePort(Protocol):
    """Registry of named caches."""

    async def open(self, name: str) -> CachePort:
        """Open (creating if needed) the cache called name."""
        ...

    async def has(self, name: str) -> bool:
        ...

    async def delete(self, name: str) -> bool:
        """Delete a whole cache. Returns True if it existed."""
        ...

    async def keys(self) -> list[str]:
        """List cache names in creation order."""
        ...


class CacheStorageError(Exception):
    """Base class for cache storage errors."""


class QuotaExceededError(CacheStorageError):
    """Raised when a put would exceed the configured entry quota."""

    def __init__(self, cache_name: str, limit: int) -> None:
        self.cache_name = cache_name
        self.limit = limit
        super().__init__(f"Quota exceeded for cache '{cache_name}' (max {limit} entries)")
