"""
Offline Cache Storage Adapters.

Implements CacheStoragePort/CachePort in memory and on the local
filesystem.

Filesystem layout:
    {base_dir}/index.json                    cache names in creation order
    {base_dir}/{cache}/{sha256(url)}.bin     response body
    {base_dir}/{cache}/{sha256(url)}.meta.json  url, status, headers

Both adapters accept an optional max_entries quota per cache; a put()
that would add an entry beyond it raises QuotaExceededError. Replacing
an existing URL never counts against the quota.
"""

from __future__ import annotations

import hashlib
import json
import shutil
from pathlib import Path
from urllib.parse import quote

from audioguide.core.ports.cache import CacheStorageError, QuotaExceededError
from audioguide.core.ports.network import FetchResponse

# --- In-memory ---


class InMemoryCache:
    """A named cache held in process memory."""

    def __init__(self, name: str, max_entries: int | None = None) -> None:
        self._name = name
        self._max_entries = max_entries
        self._entries: dict[str, FetchResponse] = {}

    @property
    def name(self) -> str:
        return self._name

    async def match(self, url: str) -> FetchResponse | None:
        return self._entries.get(url)

    async def put(self, url: str, response: FetchResponse) -> None:
        if (
            self._max_entries is not None
            and url not in self._entries
            and len(self._entries) >= self._max_entries
        ):
            raise QuotaExceededError(self._name, self._max_entries)
        self._entries[url] = response

    async def delete(self, url: str) -> bool:
        return self._entries.pop(url, None) is not None

    async def keys(self) -> list[str]:
        return list(self._entries)


class InMemoryCacheStorage:
    """Registry of in-memory caches."""

    def __init__(self, max_entries: int | None = None) -> None:
        self._max_entries = max_entries
        self._caches: dict[str, InMemoryCache] = {}

    async def open(self, name: str) -> InMemoryCache:
        if name not in self._caches:
            self._caches[name] = InMemoryCache(name, self._max_entries)
        return self._caches[name]

    async def has(self, name: str) -> bool:
        return name in self._caches

    async def delete(self, name: str) -> bool:
        return self._caches.pop(name, None) is not None

    async def keys(self) -> list[str]:
        return list(self._caches)


# --- Filesystem ---


def _entry_id(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class FileCache:
    """A named cache stored as a directory of body/metadata file pairs."""

    def __init__(self, name: str, directory: Path, max_entries: int | None = None) -> None:
        self._name = name
        self._dir = directory
        self._max_entries = max_entries

    @property
    def name(self) -> str:
        return self._name

    def _paths(self, url: str) -> tuple[Path, Path]:
        entry = _entry_id(url)
        return self._dir / f"{entry}.bin", self._dir / f"{entry}.meta.json"

    async def match(self, url: str) -> FetchResponse | None:
        data_path, meta_path = self._paths(url)
        if not meta_path.exists():
            return None
        try:
            with open(meta_path, encoding="utf-8") as f:
                meta = json.load(f)
            body = data_path.read_bytes()
            return FetchResponse(
                url=str(meta["url"]),
                status=int(meta["status"]),
                body=body,
                headers=dict(meta.get("headers") or {}),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheStorageError(f"Cannot read cached entry for {url}: {e!r}") from e

    async def put(self, url: str, response: FetchResponse) -> None:
        data_path, meta_path = self._paths(url)
        if (
            self._max_entries is not None
            and not meta_path.exists()
            and len(await self.keys()) >= self._max_entries
        ):
            raise QuotaExceededError(self._name, self._max_entries)

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            data_path.write_bytes(response.body)
            with open(meta_path, "w", encoding="utf-8") as f:
                json.dump(
                    {"url": url, "status": response.status, "headers": response.headers},
                    f,
                )
        except OSError as e:
            raise CacheStorageError(f"Cannot write cached entry for {url}: {e}") from e

    async def delete(self, url: str) -> bool:
        data_path, meta_path = self._paths(url)
        if not meta_path.exists():
            return False
        try:
            meta_path.unlink()
            data_path.unlink(missing_ok=True)
        except OSError as e:
            raise CacheStorageError(f"Cannot delete cached entry for {url}: {e}") from e
        return True

    async def keys(self) -> list[str]:
        if not self._dir.exists():
            return []
        urls = []
        try:
            for meta_path in sorted(self._dir.glob("*.meta.json")):
                with open(meta_path, encoding="utf-8") as f:
                    urls.append(json.load(f)["url"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheStorageError(f"Cannot list cache '{self._name}': {e}") from e
        return urls


class FileCacheStorage:
    """Registry of on-disk caches with a creation-ordered index."""

    def __init__(self, base_dir: str | Path, max_entries: int | None = None) -> None:
        self.base_dir = Path(base_dir)
        self._max_entries = max_entries
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheStorageError(f"Cache storage unavailable at {self.base_dir}: {e}") from e

    @property
    def _index_path(self) -> Path:
        return self.base_dir / "index.json"

    def _read_index(self) -> list[str]:
        if not self._index_path.exists():
            return []
        try:
            with open(self._index_path, encoding="utf-8") as f:
                names = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CacheStorageError(f"Cannot read cache index: {e}") from e
        if not isinstance(names, list):
            raise CacheStorageError("Cannot read cache index: expected a list")
        return [str(n) for n in names]

    def _write_index(self, names: list[str]) -> None:
        try:
            with open(self._index_path, "w", encoding="utf-8") as f:
                json.dump(names, f)
        except OSError as e:
            raise CacheStorageError(f"Cannot write cache index: {e}") from e

    def _dir_for(self, name: str) -> Path:
        return self.base_dir / quote(name, safe="")

    async def open(self, name: str) -> FileCache:
        names = self._read_index()
        if name not in names:
            names.append(name)
            self._write_index(names)
        return FileCache(name, self._dir_for(name), self._max_entries)

    async def has(self, name: str) -> bool:
        return name in self._read_index()

    async def delete(self, name: str) -> bool:
        names = self._read_index()
        if name not in names:
            return False
        try:
            shutil.rmtree(self._dir_for(name), ignore_errors=False)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheStorageError(f"Cannot delete cache '{name}': {e}") from e
        names.remove(name)
        self._write_index(names)
        return True

    async def keys(self) -> list[str]:
        return self._read_index()
