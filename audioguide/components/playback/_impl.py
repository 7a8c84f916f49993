"""
PlaybackController - the single-session playback state machine.

Key behaviors:
- Only one session per controller; a new request always tears down the
  current one (timer cancelled, media paused and rewound) first
- Other audio on the page is paused and rewound before playback starts
- A demo is marked consumed only once audio actually started
- A truncation timer that fires after its session ended is a no-op
- Denied playback is reported through the result and a signal, never raised
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from functools import partial

from audioguide.adapters.clock import SystemClock
from audioguide.core.ports.clock import ClockPort

from .component import mode_for, refusal_signal, resolve_source, state_for
from .models import (
    DEFAULT_AUDIO_URL_TEMPLATE,
    DEFAULT_DEMO_SECONDS,
    PlaybackMode,
    PlaybackResult,
    PlaybackSession,
    PlaybackSignal,
    PlaybackState,
)
from .ports import (
    DemoGatePort,
    EntitlementSourcePort,
    MediaElementPort,
    PageMediaPort,
    TimerPort,
)

logger = logging.getLogger(__name__)

SignalListener = Callable[[PlaybackSignal, str], None]


class PlaybackController:
    """Owns one media element and drives it through the playback states."""

    def __init__(
        self,
        gate: DemoGatePort,
        media: MediaElementPort,
        timers: TimerPort,
        *,
        page: PageMediaPort | None = None,
        entitlements: EntitlementSourcePort | None = None,
        clock: ClockPort | None = None,
        demo_seconds: float = DEFAULT_DEMO_SECONDS,
        url_template: str = DEFAULT_AUDIO_URL_TEMPLATE,
    ) -> None:
        if demo_seconds <= 0:
            raise ValueError("demo_seconds must be positive")
        self._gate = gate
        self._media = media
        self._timers = timers
        self._page = page
        self._entitlements = entitlements
        self._clock = clock or SystemClock()
        self._demo_seconds = demo_seconds
        self._url_template = url_template

        self._lock = threading.RLock()
        self._state = PlaybackState.IDLE
        self._session: PlaybackSession | None = None
        self._ids = itertools.count(1)
        self._listeners: list[SignalListener] = []
        self._closed = False
        self._unsubscribe_entitlements: Callable[[], None] | None = None
        if entitlements is not None:
            self._unsubscribe_entitlements = entitlements.subscribe(
                self._on_entitlement_changed
            )

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def session(self) -> PlaybackSession | None:
        return self._session

    @property
    def demo_seconds(self) -> float:
        return self._demo_seconds

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: SignalListener) -> Callable[[], None]:
        """Register for UPGRADE_NEEDED / DEMO_ALREADY_USED signals."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def request(self, content_id: str, source_url: str | None = None) -> PlaybackResult:
        """
        Ask to play a content item.

        Args:
            content_id: Content identifier
            source_url: Media URL; derived from the URL template when omitted

        Returns:
            PlaybackResult describing what happened

        Raises:
            RuntimeError: If the controller was closed
            ValueError: If content_id is empty
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("PlaybackController is closed")
            src = source_url or resolve_source(self._url_template, content_id)

            self._end_session()
            self._state = PlaybackState.IDLE

            decision = self._gate.decide(content_id)
            mode = mode_for(decision)
            if mode is None:
                signal = refusal_signal(decision)
                logger.info("Playback refused for %s: %s", content_id, decision.value)
                if signal is not None:
                    self._emit(signal, content_id)
                return PlaybackResult(
                    content_id=content_id,
                    decision=decision,
                    state=self._state,
                    started=False,
                    signal=signal,
                )

            self._silence_page()
            try:
                self._media.load(src)
                self._media.play()
            except Exception as e:
                logger.warning("Media failed to start %s: %s", src, e)
                try:
                    self._media.pause()
                except Exception as pause_error:
                    logger.warning("Media could not be paused after failed start: %s", pause_error)
                return PlaybackResult(
                    content_id=content_id,
                    decision=decision,
                    state=self._state,
                    started=False,
                    source_url=src,
                    error=str(e),
                )

            session = PlaybackSession(
                session_id=next(self._ids),
                content_id=content_id,
                mode=mode,
                source_url=src,
                started_at=self._clock.now_utc(),
            )
            if mode is PlaybackMode.DEMO:
                self._gate.mark_consumed(content_id)
                session.truncation_timer = self._timers.schedule(
                    self._demo_seconds,
                    partial(self._on_demo_elapsed, session.session_id),
                )
            self._session = session
            self._state = state_for(mode)
            logger.info("Playing %s (%s) from %s", content_id, mode.value, src)
            return PlaybackResult(
                content_id=content_id,
                decision=decision,
                state=self._state,
                started=True,
                demo_seconds=self._demo_seconds if mode is PlaybackMode.DEMO else None,
                source_url=src,
            )

    def stop(self) -> None:
        """Stop any playback and return to IDLE."""
        with self._lock:
            self._end_session()
            self._state = PlaybackState.IDLE

    def restart(self) -> bool:
        """Rewind the active session to 0; the demo window is not extended."""
        with self._lock:
            if self._session is None:
                return False
            self._media.seek(0)
            return True

    def close(self) -> None:
        """Tear down on page unload; releases the media element."""
        with self._lock:
            if self._closed:
                return
            self._end_session()
            self._state = PlaybackState.IDLE
            self._media.release()
            if self._page is not None:
                self._page.unregister(self._media)
            if self._unsubscribe_entitlements is not None:
                self._unsubscribe_entitlements()
                self._unsubscribe_entitlements = None
            self._listeners.clear()
            self._closed = True
            logger.debug("PlaybackController closed")

    def __enter__(self) -> PlaybackController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _end_session(self) -> None:
        session = self._session
        if session is None:
            return
        if session.truncation_timer is not None:
            session.truncation_timer.cancel()
            session.truncation_timer = None
        self._media.pause()
        self._media.seek(0)
        self._session = None

    def _silence_page(self) -> None:
        if self._page is None:
            return
        for element in self._page.media_elements():
            if element is self._media:
                continue
            if not element.paused:
                element.pause()
                element.seek(0)

    def _on_demo_elapsed(self, session_id: int) -> None:
        with self._lock:
            session = self._session
            if (
                self._closed
                or session is None
                or session.session_id != session_id
                or self._state is not PlaybackState.PLAYING_DEMO
            ):
                logger.debug("Ignoring stale demo timer for session %d", session_id)
                return
            session.truncation_timer = None
            self._end_session()
            self._state = PlaybackState.DEMO_EXPIRED
            logger.info("Demo of %s truncated", session.content_id)
            self._emit(PlaybackSignal.UPGRADE_NEEDED, session.content_id)

    def _on_entitlement_changed(self) -> None:
        with self._lock:
            session = self._session
            if session is None or self._state is not PlaybackState.PLAYING_DEMO:
                return
            if self._entitlements is None or not self._entitlements.has_full_access():
                return
            if session.truncation_timer is not None:
                session.truncation_timer.cancel()
                session.truncation_timer = None
            session.mode = PlaybackMode.FULL
            self._state = PlaybackState.PLAYING_FULL
            logger.info("Demo of %s upgraded to full playback", session.content_id)

    def _emit(self, signal: PlaybackSignal, content_id: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(signal, content_id)
            except Exception:
                logger.exception("Playback signal listener failed")


__all__ = ["PlaybackController", "SignalListener"]
