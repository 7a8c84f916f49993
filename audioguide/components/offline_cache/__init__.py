"""
Offline cache component.

Public API for the versioned cache worker and its message channel.
"""

from ._impl import DEFAULT_STATE_KEY, CacheLifecycleManager
from .channel import CacheWorkerChannel
from .component import (
    cache_name,
    classify_request,
    is_cacheable,
    normalize_url,
    stale_cache_names,
)
from .models import (
    DEFAULT_CACHE_PREFIX,
    DEFAULT_MANIFEST,
    ActivationResult,
    CacheGeneration,
    InstallResult,
    MessageType,
    RequestKind,
    WorkerMessage,
    WorkerState,
)
from .ports import UpdateListener

__all__ = [
    "CacheLifecycleManager",
    "CacheWorkerChannel",
    "DEFAULT_STATE_KEY",
    # Functions
    "cache_name",
    "classify_request",
    "is_cacheable",
    "normalize_url",
    "stale_cache_names",
    # Models
    "DEFAULT_CACHE_PREFIX",
    "DEFAULT_MANIFEST",
    "ActivationResult",
    "CacheGeneration",
    "InstallResult",
    "MessageType",
    "RequestKind",
    "WorkerMessage",
    "WorkerState",
    # Ports
    "UpdateListener",
]
