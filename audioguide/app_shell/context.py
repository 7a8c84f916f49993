from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from audioguide.adapters.cache_storage import FileCacheStorage, InMemoryCacheStorage
from audioguide.adapters.clock import SystemClock
from audioguide.adapters.dev_notifier import DevNotificationSender
from audioguide.adapters.http_fetch import HttpxNetwork
from audioguide.adapters.local_storage import InMemoryKeyValueStore, JsonFileKeyValueStore
from audioguide.adapters.media import AudioPage, DevMediaElement
from audioguide.adapters.sqlite_kv import SQLiteKeyValueStore
from audioguide.adapters.timers import ThreadingTimerScheduler
from audioguide.components.demo_gate import DemoGate
from audioguide.components.entitlement import (
    EntitlementEvents,
    EntitlementStatus,
    EntitlementStore,
)
from audioguide.components.offline_cache import CacheLifecycleManager, CacheWorkerChannel
from audioguide.components.playback import MediaElementPort, PlaybackController, TimerPort
from audioguide.core.ports.cache import CacheStoragePort
from audioguide.core.ports.clock import ClockPort
from audioguide.core.ports.network import NetworkPort
from audioguide.core.ports.notifications import NotificationSenderPort
from audioguide.core.ports.storage import KeyValueStorePort
from audioguide.rules.models import Rules
from audioguide.services.access import AccessService

logger = logging.getLogger(__name__)

DATA_DIR_ENV_VAR = "AUDIOGUIDE_DATA_DIR"


def resolve_data_dir(explicit: str | Path | None = None) -> Path:
    """Explicit dir, then $AUDIOGUIDE_DATA_DIR, then ./data."""
    if explicit is not None:
        return Path(explicit)
    return Path(os.environ.get(DATA_DIR_ENV_VAR, "data"))


def build_storage(rules: Rules, data_dir: Path) -> KeyValueStorePort:
    cfg = rules.storage
    if cfg.backend == "memory":
        return InMemoryKeyValueStore()
    path = data_dir / cfg.path
    if cfg.backend == "sqlite":
        data_dir.mkdir(parents=True, exist_ok=True)
        return SQLiteKeyValueStore(str(path))
    return JsonFileKeyValueStore(path)


def build_cache_storage(rules: Rules, data_dir: Path) -> CacheStoragePort:
    cfg = rules.offline_cache
    if cfg.storage_backend == "memory":
        return InMemoryCacheStorage(cfg.max_entries)
    return FileCacheStorage(data_dir / cfg.storage_dir, cfg.max_entries)


@dataclass
class ClientContext:
    rules: Rules
    data_dir: Path
    clock: ClockPort
    storage: KeyValueStorePort
    events: EntitlementEvents
    entitlements: EntitlementStore
    demo_gate: DemoGate
    access_service: AccessService
    cache_manager: CacheLifecycleManager
    cache_channel: CacheWorkerChannel
    sender: NotificationSenderPort
    page: AudioPage
    _player: PlaybackController | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(
        cls,
        rules: Rules,
        data_dir: str | Path,
        *,
        clock: ClockPort | None = None,
        storage: KeyValueStorePort | None = None,
        cache_storage: CacheStoragePort | None = None,
        network: NetworkPort | None = None,
        sender: NotificationSenderPort | None = None,
    ) -> ClientContext:
        data_dir = Path(data_dir)
        clock = clock or SystemClock()

        # Adapters
        storage = storage or build_storage(rules, data_dir)
        cache_storage = cache_storage or build_cache_storage(rules, data_dir)
        cache_cfg = rules.offline_cache
        network = network or HttpxNetwork(
            cache_cfg.origin, timeout_seconds=cache_cfg.fetch_timeout_seconds
        )
        sender = sender or DevNotificationSender()

        # Components
        events = EntitlementEvents()
        entitlements = EntitlementStore(
            storage, clock=clock, events=events, key=rules.storage.entitlement_key
        )
        demo_gate = DemoGate(entitlements, storage, key_prefix=rules.storage.demo_key_prefix)
        cache_manager = CacheLifecycleManager(
            cache_storage,
            network,
            origin=cache_cfg.origin,
            version_tag=cache_cfg.version_tag,
            cache_prefix=cache_cfg.cache_prefix,
            manifest=cache_cfg.manifest,
            clock=clock,
            state_store=storage,
        )

        # Services
        access_service = AccessService(
            entitlements,
            default_days=rules.entitlement.default_grant_days,
            sender=sender,
        )

        logger.debug("Client context created (data dir %s)", data_dir)
        return cls(
            rules=rules,
            data_dir=data_dir,
            clock=clock,
            storage=storage,
            events=events,
            entitlements=entitlements,
            demo_gate=demo_gate,
            access_service=access_service,
            cache_manager=cache_manager,
            cache_channel=CacheWorkerChannel(cache_manager),
            sender=sender,
            page=AudioPage(),
        )

    def new_player(
        self,
        media: MediaElementPort | None = None,
        timers: TimerPort | None = None,
    ) -> PlaybackController:
        """A PlaybackController wired to this context's gate and page."""
        element = media or self.page.register(DevMediaElement())
        return PlaybackController(
            self.demo_gate,
            element,
            timers or ThreadingTimerScheduler(),
            page=self.page,
            entitlements=self.entitlements,
            clock=self.clock,
            demo_seconds=self.rules.playback.demo_seconds,
            url_template=self.rules.playback.audio_url_template,
        )

    def shared_player(self) -> PlaybackController:
        """The context-wide player, created on first use."""
        if self._player is None or self._player.closed:
            self._player = self.new_player()
        return self._player

    def close(self) -> None:
        if self._player is not None:
            self._player.close()

    async def logout(self) -> EntitlementStatus:
        status = self.access_service.logout()
        if self.rules.offline_cache.clear_on_logout:
            if self.cache_channel.running:
                await self.cache_channel.clear()
            else:
                await self.cache_manager.clear_all()
        return status
