"""
Offline cache component port definitions.

The manager needs named caches, an outbound fetcher, a clock and,
optionally, a key/value store for remembering which generation is
active across restarts.
"""

from __future__ import annotations

from collections.abc import Callable

from audioguide.core.ports.cache import CachePort, CacheStoragePort
from audioguide.core.ports.clock import ClockPort
from audioguide.core.ports.network import NetworkPort
from audioguide.core.ports.storage import KeyValueStorePort

from .models import CacheGeneration

UpdateListener = Callable[[CacheGeneration], None]

__all__ = [
    "CachePort",
    "CacheStoragePort",
    "ClockPort",
    "KeyValueStorePort",
    "NetworkPort",
    "UpdateListener",
]
