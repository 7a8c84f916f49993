from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest

from audioguide.adapters.clock import FixedClock
from audioguide.adapters.local_storage import InMemoryKeyValueStore
from audioguide.adapters.media import AudioPage, DevMediaElement
from audioguide.components.demo_gate import DemoGate
from audioguide.components.entitlement import EntitlementStore
from audioguide.core.ports.network import FetchRequest, FetchResponse, NetworkError
from audioguide.rules.loader import load_rules
from audioguide.rules.models import Rules

PROJECT_ROOT = Path(__file__).resolve().parent.parent
ORIGIN = "http://localhost:5173"


# --- Test doubles shared across suites ---


class ManualTimerHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimers:
    """TimerPort whose timers only fire when the test says so."""

    def __init__(self) -> None:
        self.scheduled: list[ManualTimerHandle] = []

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ManualTimerHandle:
        handle = ManualTimerHandle(delay_seconds, callback)
        self.scheduled.append(handle)
        return handle

    @property
    def pending(self) -> list[ManualTimerHandle]:
        return [h for h in self.scheduled if not h.cancelled and not h.fired]

    def fire(self, handle: ManualTimerHandle) -> None:
        """Run a callback even if cancelled, like a timer racing its cancel."""
        handle.fired = True
        handle.callback()

    def fire_pending(self) -> int:
        handles = self.pending
        for handle in handles:
            self.fire(handle)
        return len(handles)


class ScriptedNetwork:
    """NetworkPort serving canned responses keyed by absolute URL."""

    def __init__(self, origin: str = ORIGIN) -> None:
        self.origin = origin
        self.responses: dict[str, FetchResponse] = {}
        self.failing: set[str] = set()
        self.offline = False
        self.calls: list[str] = []

    def serve(self, path: str, body: bytes = b"ok", status: int = 200) -> None:
        url = self.origin + path
        self.responses[url] = FetchResponse(
            url=url, status=status, body=body, headers={"content-type": "text/plain"}
        )

    def serve_manifest(self, paths: list[str] | tuple[str, ...], tag: str = "v1") -> None:
        for path in paths:
            self.serve(path, f"{tag}:{path}".encode())

    async def fetch(self, request: FetchRequest) -> FetchResponse:
        self.calls.append(request.url)
        if self.offline or request.url in self.failing:
            raise NetworkError(request.url, "connection refused")
        response = self.responses.get(request.url)
        if response is None:
            return FetchResponse(url=request.url, status=404, body=b"not found")
        return response


# --- Fixtures ---


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def entitlements(kv_store: InMemoryKeyValueStore, clock: FixedClock) -> EntitlementStore:
    return EntitlementStore(kv_store, clock=clock)


@pytest.fixture
def demo_gate(entitlements: EntitlementStore, kv_store: InMemoryKeyValueStore) -> DemoGate:
    return DemoGate(entitlements, kv_store)


@pytest.fixture
def timers() -> ManualTimers:
    return ManualTimers()


@pytest.fixture
def page() -> AudioPage:
    return AudioPage()


@pytest.fixture
def media(page: AudioPage) -> DevMediaElement:
    return page.register(DevMediaElement(label="guide"))


@pytest.fixture
def network() -> ScriptedNetwork:
    return ScriptedNetwork()


@pytest.fixture
def rules() -> Rules:
    """The real project rules.yaml."""
    return load_rules(PROJECT_ROOT / "rules.yaml")


@pytest.fixture
def memory_rules(rules: Rules) -> Rules:
    """Project rules switched to in-memory storage and caches."""
    return rules.model_copy(
        update={
            "storage": rules.storage.model_copy(update={"backend": "memory"}),
            "offline_cache": rules.offline_cache.model_copy(
                update={"storage_backend": "memory"}
            ),
        }
    )
