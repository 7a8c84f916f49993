"""
Offline cache component.

Pure functions for naming caches, normalizing URLs and routing requests
to a fetch strategy.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from urllib.parse import urljoin, urlsplit, urlunsplit

from audioguide.core.ports.network import FetchRequest, FetchResponse

from .models import CacheGeneration, RequestKind


def cache_name(prefix: str, version_tag: str) -> str:
    if not prefix or not version_tag:
        raise ValueError("cache prefix and version tag are required")
    return f"{prefix}-{version_tag}"


def normalize_url(url: str, origin: str) -> str:
    """
    Absolute form of a request URL, without its fragment.

    Relative URLs resolve against origin; "/" and "" both mean the root.
    """
    absolute = urljoin(origin.rstrip("/") + "/", url)
    parts = urlsplit(absolute)
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", parts.query, ""))


def classify_request(url: str, manifest: Iterable[str], origin: str) -> RequestKind:
    """
    Pick the fetch strategy for a normalized URL.

    Same-origin URLs whose path is listed in the manifest are
    MANIFEST_ASSET (the query string is ignored); everything else is
    RUNTIME.
    """
    parts = urlsplit(url)
    if parts.netloc and parts.netloc != urlsplit(origin).netloc:
        return RequestKind.RUNTIME
    if (parts.path or "/") in set(manifest):
        return RequestKind.MANIFEST_ASSET
    return RequestKind.RUNTIME


def is_cacheable(request: FetchRequest, response: FetchResponse) -> bool:
    return request.method.upper() == "GET" and response.ok and not response.from_cache


def stale_cache_names(names: Iterable[str], active_name: str) -> list[str]:
    """Every cache that is not the active generation's."""
    return [name for name in names if name != active_name]


def dedupe(paths: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(paths))


def serialize_generations(
    active: CacheGeneration | None, waiting: CacheGeneration | None
) -> str:
    def entry(generation: CacheGeneration | None) -> dict[str, object] | None:
        if generation is None:
            return None
        return {"versionTag": generation.version_tag, "manifest": list(generation.manifest)}

    return json.dumps({"active": entry(active), "waiting": entry(waiting)})


def parse_generations(raw: str | None) -> dict[str, tuple[str, tuple[str, ...]] | None]:
    """
    Parse the persisted worker state.

    Returns:
        {"active": (tag, manifest) | None, "waiting": (tag, manifest) | None};
        unreadable input yields both None
    """
    empty: dict[str, tuple[str, tuple[str, ...]] | None] = {"active": None, "waiting": None}
    if not raw:
        return empty
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return empty
    if not isinstance(data, dict):
        return empty

    result = dict(empty)
    for slot in ("active", "waiting"):
        entry = data.get(slot)
        if not isinstance(entry, dict):
            continue
        tag = entry.get("versionTag")
        manifest = entry.get("manifest")
        if isinstance(tag, str) and tag and isinstance(manifest, list):
            result[slot] = (tag, tuple(str(p) for p in manifest))
    return result
