"""
CacheLifecycleManager - versioned offline cache worker.

Lifecycle:
    install()  -> INSTALLING -> ACTIVE (nothing active yet)
                             -> WAITING (+ "update available" notification)
                             -> REDUNDANT (any pre-fetch failed)
    activate() -> WAITING -> ACTIVE, then stale caches are deleted

Key behaviors:
- Install is all-or-nothing: entries are written only after every
  manifest fetch succeeded
- Activation is never automatic once a generation is active; it needs
  page_load(), apply_update(confirm=True) or a SKIP_WAITING message
- Old caches are deleted only after the new generation is marked active,
  so manifest requests always have a cache to hit
- Cache-layer failures are logged and never block a network fetch
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from audioguide.adapters.clock import SystemClock
from audioguide.core.ports.cache import CacheStorageError
from audioguide.core.ports.network import FetchRequest, FetchResponse, NetworkError
from audioguide.core.ports.storage import StorageError

from .component import (
    cache_name,
    classify_request,
    dedupe,
    is_cacheable,
    normalize_url,
    parse_generations,
    serialize_generations,
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
from .ports import CacheStoragePort, ClockPort, KeyValueStorePort, NetworkPort, UpdateListener

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "cacheWorkerState"


class CacheLifecycleManager:
    """Install, serve, activate and invalidate versioned caches."""

    def __init__(
        self,
        storage: CacheStoragePort,
        network: NetworkPort,
        *,
        origin: str,
        version_tag: str,
        cache_prefix: str = DEFAULT_CACHE_PREFIX,
        manifest: tuple[str, ...] | list[str] = DEFAULT_MANIFEST,
        clock: ClockPort | None = None,
        state_store: KeyValueStorePort | None = None,
        state_key: str = DEFAULT_STATE_KEY,
    ) -> None:
        """
        Initialize the manager.

        Args:
            storage: Named cache registry
            network: Outbound fetcher
            origin: Base URL relative request paths resolve against
            version_tag: Default tag for install()
            cache_prefix: Prefix of every generation's cache name
            manifest: Default install manifest (absolute paths)
            clock: Time source for install timestamps
            state_store: Optional store that remembers active/waiting tags
            state_key: Key used in state_store
        """
        self._storage = storage
        self._network = network
        self._origin = origin.rstrip("/")
        self._version_tag = version_tag
        self._prefix = cache_prefix
        self._manifest = dedupe(manifest)
        self._clock = clock or SystemClock()
        self._state_store = state_store
        self._state_key = state_key

        self._active: CacheGeneration | None = None
        self._waiting: CacheGeneration | None = None
        self._installing: CacheGeneration | None = None
        self._listeners: list[UpdateListener] = []
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    # --- State ---

    @property
    def active(self) -> CacheGeneration | None:
        return self._active

    @property
    def waiting(self) -> CacheGeneration | None:
        return self._waiting

    @property
    def installing(self) -> CacheGeneration | None:
        return self._installing

    @property
    def update_available(self) -> bool:
        return self._waiting is not None

    def status(self) -> dict[str, Any]:
        return {
            "active": self._active.to_dict() if self._active else None,
            "waiting": self._waiting.to_dict() if self._waiting else None,
            "installing": self._installing.to_dict() if self._installing else None,
            "updateAvailable": self.update_available,
        }

    def on_update_available(self, listener: UpdateListener) -> Callable[[], None]:
        """Register for "new version waiting" notifications."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def restore(self) -> None:
        """Reload active/waiting generations remembered in the state store."""
        if self._state_store is None:
            return
        try:
            raw = self._state_store.get(self._state_key)
        except StorageError as e:
            logger.warning("Cannot read cache worker state: %s", e)
            return

        saved = parse_generations(raw)
        for slot, state in (("active", WorkerState.ACTIVE), ("waiting", WorkerState.WAITING)):
            entry = saved[slot]
            if entry is None:
                continue
            tag, manifest = entry
            name = cache_name(self._prefix, tag)
            try:
                present = await self._storage.has(name)
            except CacheStorageError as e:
                logger.warning("Cannot check cache %s: %s", name, e)
                present = False
            if not present:
                logger.info("Remembered %s generation %s has no cache; dropped", slot, tag)
                continue
            generation = CacheGeneration(tag, name, manifest, state=state)
            if slot == "active":
                self._active = generation
            else:
                self._waiting = generation
        if self._active is None and self._waiting is not None:
            self._active, self._waiting = self._waiting, None
            self._active.state = WorkerState.ACTIVE
            self._persist()
        logger.debug("Cache worker state restored: %s", self.status())

    # --- Install / update ---

    async def install(
        self,
        version_tag: str | None = None,
        manifest: tuple[str, ...] | list[str] | None = None,
    ) -> InstallResult:
        """
        Pre-cache a manifest into a new generation.

        Args:
            version_tag: Tag of the new generation (defaults to the configured one)
            manifest: Paths to pre-cache (defaults to the configured manifest)

        Returns:
            InstallResult; failures are reported, not raised
        """
        tag = version_tag or self._version_tag
        paths = dedupe(manifest) if manifest is not None else self._manifest
        name = cache_name(self._prefix, tag)

        async with self._lifecycle_lock():
            for current in (self._active, self._waiting):
                if current is not None and current.version_tag == tag:
                    logger.info("Generation %s already %s", tag, current.state.value)
                    return InstallResult(tag, name, success=True, state=current.state)

            generation = CacheGeneration(tag, name, paths)
            self._installing = generation
            logger.info("Installing cache generation %s (%d assets)", tag, len(paths))
            try:
                return await self._install(generation)
            finally:
                self._installing = None

    async def _install(self, generation: CacheGeneration) -> InstallResult:
        urls = [normalize_url(path, self._origin) for path in generation.manifest]
        fetched = await asyncio.gather(*(self._prefetch(url) for url in urls))

        failures = tuple(url for url, response, _ in fetched if response is None)
        entries = [(url, response) for url, response, _ in fetched if response is not None]
        if failures:
            first_error = next(err for _, response, err in fetched if response is None)
            return await self._abandon(generation, failures, first_error)

        try:
            cache = await self._storage.open(generation.cache_name)
            for url, response in entries:
                await cache.put(url, response)
        except CacheStorageError as e:
            return await self._abandon(generation, (), str(e))

        generation.installed_at = self._clock.now_utc()
        activated = False
        if self._active is None:
            await self._promote(generation)
            activated = True
        else:
            previous = self._waiting
            if previous is not None:
                previous.state = WorkerState.REDUNDANT
                await self._delete_cache(previous.cache_name)
                logger.info("Waiting generation %s superseded", previous.version_tag)
            generation.state = WorkerState.WAITING
            self._waiting = generation
            self._persist()
            logger.info("Generation %s installed and waiting", generation.version_tag)
            self._notify_update(generation)

        return InstallResult(
            generation.version_tag,
            generation.cache_name,
            success=True,
            state=generation.state,
            cached=len(entries),
            activated=activated,
        )

    async def _prefetch(self, url: str) -> tuple[str, FetchResponse | None, str | None]:
        try:
            response = await self._network.fetch(FetchRequest(url))
        except NetworkError as e:
            return url, None, e.reason
        if not response.ok:
            return url, None, f"HTTP {response.status}"
        return url, response, None

    async def _abandon(
        self, generation: CacheGeneration, failures: tuple[str, ...], error: str | None
    ) -> InstallResult:
        generation.state = WorkerState.REDUNDANT
        await self._delete_cache(generation.cache_name)
        logger.warning(
            "Install of generation %s failed (%d assets): %s",
            generation.version_tag,
            len(failures),
            error,
        )
        return InstallResult(
            generation.version_tag,
            generation.cache_name,
            success=False,
            state=WorkerState.REDUNDANT,
            failures=failures,
            error=error,
        )

    async def check_for_update(
        self,
        version_tag: str,
        manifest: tuple[str, ...] | list[str] | None = None,
    ) -> InstallResult | None:
        """Install version_tag unless it is already active or waiting."""
        known = {g.version_tag for g in (self._active, self._waiting) if g is not None}
        if version_tag in known:
            logger.debug("No update: %s already known", version_tag)
            return None
        return await self.install(version_tag, manifest)

    # --- Activation ---

    async def activate(self) -> ActivationResult:
        """Promote the waiting generation and delete every other cache."""
        async with self._lifecycle_lock():
            generation = self._waiting
            if generation is None:
                current = self._active
                return ActivationResult(
                    activated=False,
                    version_tag=current.version_tag if current else None,
                    cache_name=current.cache_name if current else None,
                    reason="no waiting generation",
                )
            self._waiting = None
            deleted = await self._promote(generation)
            return ActivationResult(
                activated=True,
                version_tag=generation.version_tag,
                cache_name=generation.cache_name,
                deleted_caches=deleted,
            )

    async def _promote(self, generation: CacheGeneration) -> tuple[str, ...]:
        previous = self._active
        generation.state = WorkerState.ACTIVE
        self._active = generation
        if previous is not None and previous is not generation:
            previous.state = WorkerState.REDUNDANT
        self._persist()
        logger.info("Cache generation %s active", generation.version_tag)
        return await self._collect_garbage(generation.cache_name)

    async def _collect_garbage(self, active_name: str) -> tuple[str, ...]:
        try:
            names = await self._storage.keys()
        except CacheStorageError as e:
            logger.warning("Cannot list caches for cleanup: %s", e)
            return ()
        deleted = []
        for name in stale_cache_names(names, active_name):
            if await self._delete_cache(name):
                deleted.append(name)
        if deleted:
            logger.info("Deleted stale caches: %s", ", ".join(deleted))
        return tuple(deleted)

    async def page_load(self) -> ActivationResult | None:
        """A full page load activates a waiting generation."""
        if self._waiting is None:
            return None
        return await self.activate()

    async def apply_update(self, confirm: bool) -> ActivationResult | None:
        """The visitor's answer to the "reload to update" prompt."""
        if not confirm:
            logger.info("Update declined; generation stays waiting")
            return None
        return await self.page_load()

    # --- Fetch interception ---

    async def handle_fetch(self, request: FetchRequest | str) -> FetchResponse:
        """
        Answer a page request from cache and/or network.

        Never raises; a request that can be served from neither returns
        FetchResponse.network_error().
        """
        if isinstance(request, str):
            request = FetchRequest(request)
        manifest = self._active.manifest if self._active else self._manifest
        try:
            url = normalize_url(request.url, self._origin)
            kind = classify_request(url, manifest, self._origin)
        except ValueError as e:
            logger.warning("Unusable request URL %r: %s", request.url, e)
            return FetchResponse.network_error(request.url, str(e))
        request = replace(request, url=url)
        logger.debug("%s %s -> %s", request.method, url, kind.value)

        if kind is RequestKind.MANIFEST_ASSET and request.method.upper() == "GET":
            return await self._cache_first(request)
        return await self._network_first(request)

    async def _cache_first(self, request: FetchRequest) -> FetchResponse:
        cached = await self._match_active(request.url)
        if cached is not None:
            return cached
        try:
            response = await self._network.fetch(request)
        except NetworkError as e:
            fallback = await self._match_any(request.url)
            return fallback or FetchResponse.network_error(request.url, e.reason)
        if is_cacheable(request, response):
            await self._store(request.url, response)
        return response

    async def _network_first(self, request: FetchRequest) -> FetchResponse:
        try:
            response = await self._network.fetch(request)
        except NetworkError as e:
            if request.method.upper() == "GET":
                fallback = await self._match_any(request.url)
                if fallback is not None:
                    logger.debug("Offline fallback for %s", request.url)
                    return fallback
            return FetchResponse.network_error(request.url, e.reason)
        if is_cacheable(request, response):
            await self._store(request.url, response)
        return response

    async def _match_active(self, url: str) -> FetchResponse | None:
        if self._active is None:
            return None
        try:
            cache = await self._storage.open(self._active.cache_name)
            hit = await cache.match(url)
        except CacheStorageError as e:
            logger.warning("Cache lookup failed for %s: %s", url, e)
            return None
        return replace(hit, from_cache=True) if hit is not None else None

    async def _match_any(self, url: str) -> FetchResponse | None:
        try:
            names = await self._storage.keys()
        except CacheStorageError as e:
            logger.warning("Cannot list caches for %s: %s", url, e)
            return None
        if self._active is not None and self._active.cache_name in names:
            names.remove(self._active.cache_name)
            names.insert(0, self._active.cache_name)
        for name in names:
            try:
                hit = await (await self._storage.open(name)).match(url)
            except CacheStorageError as e:
                logger.warning("Cache lookup in %s failed for %s: %s", name, url, e)
                continue
            if hit is not None:
                return replace(hit, from_cache=True)
        return None

    async def _store(self, url: str, response: FetchResponse) -> None:
        if self._active is None:
            return
        try:
            cache = await self._storage.open(self._active.cache_name)
            await cache.put(url, replace(response, url=url))
        except CacheStorageError as e:
            logger.warning("Cache write skipped for %s: %s", url, e)

    # --- Introspection / invalidation ---

    async def cache_names(self) -> list[str]:
        try:
            return await self._storage.keys()
        except CacheStorageError as e:
            logger.warning("Cannot list caches: %s", e)
            return []

    async def cache_entry_count(self) -> int:
        """Total entries across every cache; 0 when storage is unavailable."""
        try:
            total = 0
            for name in await self._storage.keys():
                total += len(await (await self._storage.open(name)).keys())
            return total
        except CacheStorageError as e:
            logger.warning("Cannot count cache entries: %s", e)
            return 0

    async def invalidate(self, url: str) -> bool:
        """Remove url from every cache. Returns True if any entry went away."""
        try:
            target = normalize_url(url, self._origin)
        except ValueError as e:
            logger.warning("Cannot invalidate unusable URL %r: %s", url, e)
            return False
        removed = False
        try:
            for name in await self._storage.keys():
                if await (await self._storage.open(name)).delete(target):
                    removed = True
        except CacheStorageError as e:
            logger.warning("Invalidate failed for %s: %s", target, e)
            return False
        logger.info("Invalidated %s: %s", target, removed)
        return removed

    async def clear_all(self) -> bool:
        """Delete every cache. Generation state is kept; caches refill on use."""
        async with self._lifecycle_lock():
            try:
                names = await self._storage.keys()
            except CacheStorageError as e:
                logger.warning("Cannot list caches to clear: %s", e)
                return False
            ok = True
            for name in names:
                ok = await self._delete_cache(name) and ok
            logger.info("Cleared %d caches", len(names))
            return ok

    # --- Messages ---

    async def handle_message(self, message: WorkerMessage | Mapping[str, Any]) -> dict[str, Any]:
        """Answer a page message; unknown or malformed messages get an error reply."""
        if not isinstance(message, WorkerMessage):
            try:
                message = WorkerMessage.from_dict(message)
            except ValueError as e:
                return {"success": False, "error": str(e)}

        if message.type is MessageType.SKIP_WAITING:
            return (await self.activate()).to_dict()
        if message.type is MessageType.CACHE_INVALIDATE:
            url = message.payload.get("url")
            if not isinstance(url, str) or not url:
                return {"success": False, "error": "payload.url is required"}
            return {"success": await self.invalidate(url)}
        if message.type is MessageType.CACHE_CLEAR:
            return {"success": await self.clear_all()}
        if message.type is MessageType.GET_CACHE_SIZE:
            return {"size": await self.cache_entry_count()}
        status = self.status()
        status["caches"] = await self.cache_names()
        status["size"] = await self.cache_entry_count()
        return status

    # --- Internals ---

    def _lifecycle_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _delete_cache(self, name: str) -> bool:
        try:
            await self._storage.delete(name)
        except CacheStorageError as e:
            logger.warning("Cannot delete cache %s: %s", name, e)
            return False
        return True

    def _persist(self) -> None:
        if self._state_store is None:
            return
        try:
            self._state_store.set(
                self._state_key, serialize_generations(self._active, self._waiting)
            )
        except StorageError as e:
            logger.warning("Cannot save cache worker state: %s", e)

    def _notify_update(self, generation: CacheGeneration) -> None:
        for listener in list(self._listeners):
            try:
                listener(generation)
            except Exception:
                logger.exception("Update listener failed")
