"""
Offline cache component models.

Invariants:
- At most one ACTIVE and one WAITING generation at any time
- A generation's cache name is "<prefix>-<version_tag>"
- REDUNDANT is terminal
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

DEFAULT_CACHE_PREFIX = "audio-guide-static"
DEFAULT_MANIFEST: tuple[str, ...] = (
    "/",
    "/index.html",
    "/manifest.json",
    "/icons/icon-192x192.png",
    "/icons/icon-512x512.png",
)


class WorkerState(Enum):
    INSTALLING = "installing"
    WAITING = "waiting"
    ACTIVE = "active"
    REDUNDANT = "redundant"


class RequestKind(Enum):
    MANIFEST_ASSET = "manifest_asset"  # cache-first
    RUNTIME = "runtime"  # network-first


@dataclass
class CacheGeneration:
    """One versioned cache and its lifecycle state."""

    version_tag: str
    cache_name: str
    manifest: tuple[str, ...]
    state: WorkerState = WorkerState.INSTALLING
    installed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "versionTag": self.version_tag,
            "cacheName": self.cache_name,
            "state": self.state.value,
            "installedAt": self.installed_at.isoformat() if self.installed_at else None,
            "manifest": list(self.manifest),
        }


@dataclass(frozen=True)
class InstallResult:
    version_tag: str
    cache_name: str
    success: bool
    state: WorkerState
    cached: int = 0
    activated: bool = False
    failures: tuple[str, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "versionTag": self.version_tag,
            "cacheName": self.cache_name,
            "success": self.success,
            "state": self.state.value,
            "cached": self.cached,
            "activated": self.activated,
            "failures": list(self.failures),
            "error": self.error,
        }


@dataclass(frozen=True)
class ActivationResult:
    activated: bool
    version_tag: str | None = None
    cache_name: str | None = None
    deleted_caches: tuple[str, ...] = ()
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "activated": self.activated,
            "versionTag": self.version_tag,
            "cacheName": self.cache_name,
            "deletedCaches": list(self.deleted_caches),
            "reason": self.reason,
        }


class MessageType(Enum):
    SKIP_WAITING = "SKIP_WAITING"
    CACHE_INVALIDATE = "CACHE_INVALIDATE"
    CACHE_CLEAR = "CACHE_CLEAR"
    GET_CACHE_SIZE = "GET_CACHE_SIZE"
    GET_STATUS = "GET_STATUS"


@dataclass(frozen=True)
class WorkerMessage:
    """A page-to-worker message: {"type": ..., "payload": {...}}."""

    type: MessageType
    payload: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> WorkerMessage:
        """
        Parse a raw message.

        Raises:
            ValueError: If the type is missing or unknown
        """
        try:
            message_type = MessageType(raw.get("type"))
        except ValueError as e:
            raise ValueError(f"Unknown worker message type: {raw.get('type')!r}") from e
        payload = raw.get("payload") or {}
        if not isinstance(payload, Mapping):
            raise ValueError("Worker message payload must be an object")
        return cls(type=message_type, payload=payload)
