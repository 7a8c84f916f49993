"""
Visitor journey.

A first-time visitor on a JSON-backed client: previews an item, hits the
demo limit, subscribes, listens in full, logs out. Meanwhile the offline
cache installs v1, serves the app shell offline, and moves to v2 once the
visitor accepts the update.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from audioguide.adapters.clock import FixedClock
from audioguide.adapters.dev_notifier import DevNotificationSender
from audioguide.adapters.media import DevMediaElement
from audioguide.app_shell.context import ClientContext
from audioguide.components.demo_gate import AccessDecision
from audioguide.components.offline_cache import WorkerState
from audioguide.components.playback import PlaybackSignal, PlaybackState
from audioguide.rules.models import Rules


def _context(rules: Rules, data_dir: Path, clock: FixedClock, network) -> ClientContext:
    return ClientContext.create(
        rules, data_dir, clock=clock, network=network, sender=DevNotificationSender()
    )


class TestPlaybackJourney:
    def test_preview_upgrade_and_listen(
        self, rules: Rules, tmp_path: Path, clock: FixedClock, network, timers
    ) -> None:
        ctx = _context(rules, tmp_path, clock, network)
        signals: list[tuple[PlaybackSignal, str]] = []
        media = ctx.page.register(DevMediaElement(label="guide"))
        player = ctx.new_player(media, timers)
        player.subscribe(lambda signal, content_id: signals.append((signal, content_id)))

        # First listen of A is a 10 second preview
        first = player.request("A")
        assert first.decision is AccessDecision.DEMO_ALLOWED
        assert player.state is PlaybackState.PLAYING_DEMO
        assert timers.pending[0].delay == rules.playback.demo_seconds

        timers.fire_pending()
        assert player.state is PlaybackState.DEMO_EXPIRED
        assert media.paused is True
        assert signals == [(PlaybackSignal.UPGRADE_NEEDED, "A")]

        # Replaying A is refused; B still has its own preview
        refused = player.request("A")
        assert refused.started is False
        assert refused.signal is PlaybackSignal.DEMO_ALREADY_USED
        assert player.request("B").decision is AccessDecision.DEMO_ALLOWED

        # Subscribing mid-preview turns B into a full listen
        outcome = ctx.access_service.subscribe(email="visitor@example.com")
        assert outcome.status.has_full_access is True
        assert player.state is PlaybackState.PLAYING_FULL
        assert timers.pending == []

        # A plays in full now
        full = player.request("A")
        assert full.decision is AccessDecision.FULL
        assert full.demo_seconds is None
        player.close()

        # A new session on the same data dir remembers everything
        reopened = _context(rules, tmp_path, clock, network)
        assert reopened.entitlements.has_full_access() is True
        assert reopened.demo_gate.consumed_ids() == ["A", "B"]

        asyncio.run(reopened.logout())
        assert reopened.demo_gate.decide("A") is AccessDecision.DEMO_EXHAUSTED
        assert reopened.demo_gate.decide("C") is AccessDecision.DEMO_ALLOWED

    def test_subscription_runs_out(
        self, rules: Rules, tmp_path: Path, clock: FixedClock, network, timers
    ) -> None:
        ctx = _context(rules, tmp_path, clock, network)
        ctx.access_service.subscribe(2)
        player = ctx.new_player(DevMediaElement(), timers)

        assert player.request("A").decision is AccessDecision.FULL

        clock.advance(days=3)

        assert ctx.entitlements.status().expired is True
        assert player.request("A").decision is AccessDecision.DEMO_ALLOWED
        player.close()

    def test_closed_players_leave_the_page(
        self, rules: Rules, tmp_path: Path, clock: FixedClock, network, timers
    ) -> None:
        ctx = _context(rules, tmp_path, clock, network)

        for _ in range(3):
            ctx.new_player(timers=timers).close()
        shared = ctx.shared_player()
        assert len(ctx.page.media_elements()) == 1

        ctx.close()

        assert shared.closed is True
        assert ctx.page.media_elements() == []


class TestOfflineJourney:
    def test_install_offline_and_update(
        self, memory_rules: Rules, tmp_path: Path, clock: FixedClock, network
    ) -> None:
        manifest = memory_rules.offline_cache.manifest
        network.serve_manifest(manifest, "v1")
        network.serve("/api/tours", b'{"tours": 3}')
        ctx = _context(memory_rules, tmp_path, clock, network)
        manager = ctx.cache_manager
        updates: list[str] = []
        manager.on_update_available(lambda generation: updates.append(generation.version_tag))

        async def journey() -> None:
            first = await manager.install()
            assert first.activated is True

            # Runtime API data is cached while online
            live = await manager.handle_fetch("/api/tours")
            assert live.from_cache is False

            network.offline = True
            shell = await manager.handle_fetch("/index.html")
            assert shell.from_cache is True
            assert shell.body == b"v1:/index.html"
            tours = await manager.handle_fetch("/api/tours")
            assert tours.from_cache is True
            missing = await manager.handle_fetch("/api/unknown")
            assert missing.status == 0
            network.offline = False

            # v2 is deployed; it waits until the visitor accepts
            network.serve_manifest(manifest, "v2")
            second = await manager.check_for_update("v2")
            assert second is not None and second.state is WorkerState.WAITING
            assert updates == ["v2"]
            assert await manager.apply_update(confirm=False) is None
            assert (await manager.handle_fetch("/index.html")).body == b"v1:/index.html"

            activation = await manager.apply_update(confirm=True)
            assert activation is not None and activation.activated
            assert await manager.cache_names() == ["audio-guide-static-v2"]
            assert (await manager.handle_fetch("/index.html")).body == b"v2:/index.html"

        asyncio.run(journey())
