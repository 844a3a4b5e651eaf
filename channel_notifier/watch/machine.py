"""Watch-session state machine.

One machine per observed item. It owns the session, the sampling task
handle and the presence gate; transitions go through the pure functions
in ``skip_detector``.

States:
    IDLE -> SAMPLING -> CONFIRMED      threshold met, fires WatchConfirmed once
    IDLE -> SAMPLING -> ABANDONED      stopped before the threshold
    IDLE -> PAUSE_ONLY                 item already watched; never samples

The sampling handle is cancelled on every terminal transition and while
the viewer is absent. Confirmed and pause-only machines keep listening
for pause/end so the "now playing" display can be cleared.
"""

import logging
from dataclasses import replace
from typing import Callable

from channel_notifier.observability.metrics import get_metrics
from channel_notifier.scheduling.scheduler import Scheduler, TaskHandle
from channel_notifier.watch.config import WatchConfig
from channel_notifier.watch.presence import PresenceGate
from channel_notifier.watch.sampler import PlaybackSource, ProgressSampler
from channel_notifier.watch.schemas import (
    SessionState,
    TickKind,
    WatchConfirmed,
    WatchSession,
)
from channel_notifier.watch.skip_detector import apply_sample, meets_threshold, resume_sample

logger = logging.getLogger(__name__)


class WatchSessionMachine:
    """Tracks one item and decides whether it was genuinely watched.

    Usage:
        machine = WatchSessionMachine(
            "UC...", "dQw4w9WgXcQ", player, scheduler,
            on_confirmed=recorder_callback,
        )
        machine.start()
        ...
        machine.stop()
    """

    def __init__(
        self,
        source_id: str,
        item_id: str,
        player: PlaybackSource,
        scheduler: Scheduler,
        *,
        title: str = "",
        already_watched: bool = False,
        config: WatchConfig | None = None,
        presence: PresenceGate | None = None,
        on_confirmed: Callable[[WatchConfirmed], None] | None = None,
        on_now_playing: Callable[[str, str], None] | None = None,
        on_cleared: Callable[[str], None] | None = None,
    ) -> None:
        self._config = config or WatchConfig()
        self._scheduler = scheduler
        self._sampler = ProgressSampler(player)
        self._presence = presence or PresenceGate(self._config, now=scheduler.now())
        self._already_watched = already_watched
        self._on_confirmed = on_confirmed
        self._on_now_playing = on_now_playing
        self._on_cleared = on_cleared
        self._handle: TaskHandle | None = None
        self._session = WatchSession(source_id=source_id, item_id=item_id, title=title)
        self._last_kind: TickKind | None = None
        self._suspended_while_playing = False

    @property
    def session(self) -> WatchSession:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def presence(self) -> PresenceGate:
        return self._presence

    @property
    def is_sampling(self) -> bool:
        """A sampling task is currently scheduled."""
        return self._handle is not None and not self._handle.cancelled

    @property
    def last_tick_kind(self) -> TickKind | None:
        return self._last_kind

    # ── Lifecycle ───────────────────────────────────────────────

    def start(self) -> None:
        if self._session.state != SessionState.IDLE:
            return

        now = self._scheduler.now()
        self._notify_now_playing()

        if self._already_watched:
            self._session = replace(
                self._session, state=SessionState.PAUSE_ONLY, started_at=now
            )
            get_metrics().record_watch_session("pause_only")
            logger.debug("Item %s already watched, not sampling", self._session.item_id)
            return

        self._session = replace(self._session, state=SessionState.SAMPLING, started_at=now)
        sample = self._sampler.read(now)
        if sample is not None:
            self._session, self._last_kind = apply_sample(self._session, sample, self._config)
            self._presence.set_playing(not sample.paused, now)
        self._resume_timer()

    def stop(self) -> None:
        """Navigation away or explicit stop."""
        self._cancel_timer()
        if self._session.state in (SessionState.SAMPLING, SessionState.IDLE):
            self._session = replace(self._session, state=SessionState.ABANDONED)
            get_metrics().record_watch_session("abandoned")
            logger.debug(
                "Abandoned %s at progress %.2f",
                self._session.item_id, self._session.highest_continuous_progress,
            )
        self._notify_cleared()

    # ── Sampling ────────────────────────────────────────────────

    def tick(self) -> None:
        """Process one scheduled sample."""
        if self._session.state != SessionState.SAMPLING:
            self._cancel_timer()
            return

        now = self._scheduler.now()
        sample = self._sampler.read(now)
        if sample is not None:
            self._presence.set_playing(not sample.paused, now)

        if not self._presence.is_present(now):
            self._suspend()
            return
        if sample is None:
            return

        self._session, self._last_kind = apply_sample(self._session, sample, self._config)
        if self._last_kind == TickKind.FORWARD_SKIP:
            logger.debug("Forward skip on %s at %.1fs", self._session.item_id, sample.position)
        self._check_confirmation(sample.progress)

    def on_seek(self) -> None:
        """A seek event from the host, classified immediately."""
        if self._session.state != SessionState.SAMPLING or not self.is_sampling:
            return
        now = self._scheduler.now()
        sample = self._sampler.read(now)
        if sample is None:
            return
        self._session, self._last_kind = apply_sample(self._session, sample, self._config)
        self._check_confirmation(sample.progress)

    def _check_confirmation(self, progress: float) -> None:
        if not meets_threshold(self._session, self._config):
            return

        self._session = replace(self._session, state=SessionState.CONFIRMED)
        self._cancel_timer()
        get_metrics().record_watch_session("confirmed")

        event = WatchConfirmed(
            source_id=self._session.source_id,
            item_id=self._session.item_id,
            title=self._session.title,
            watch_fraction=max(progress, self._session.highest_continuous_progress),
            watched_seconds=self._session.accumulated_seconds,
        )
        logger.info(
            "Watch confirmed for %s/%s after %.0fs",
            event.source_id, event.item_id, event.watched_seconds,
        )
        if self._on_confirmed is not None:
            try:
                self._on_confirmed(event)
            except Exception as e:
                logger.warning("WatchConfirmed handler failed for %s: %s", event.item_id, e)

    # ── Host events ─────────────────────────────────────────────

    def on_play(self) -> None:
        now = self._scheduler.now()
        self._presence.set_playing(True, now)
        self._notify_now_playing()
        self._maybe_resume(now)

    def on_pause(self) -> None:
        self._presence.set_playing(False, self._scheduler.now())
        self._notify_cleared()

    def on_ended(self) -> None:
        self._presence.set_playing(False, self._scheduler.now())
        if self._session.state == SessionState.SAMPLING and self.is_sampling:
            # Take a final reading so the last stretch counts
            self.tick()
        self._notify_cleared()

    def on_user_input(self) -> None:
        now = self._scheduler.now()
        self._presence.record_input(now)
        self._maybe_resume(now)

    def on_visibility_change(self, visible: bool) -> None:
        now = self._scheduler.now()
        self._presence.set_visible(visible, now)
        if visible:
            self._maybe_resume(now)
        elif not self._presence.is_present(now) and self.is_sampling:
            self._suspend()

    # ── Internals ───────────────────────────────────────────────

    def _suspend(self) -> None:
        if self.is_sampling:
            logger.debug("Viewer absent, suspending sampling of %s", self._session.item_id)
            self._suspended_while_playing = self._presence.playing
        self._cancel_timer()

    def _maybe_resume(self, now: float) -> None:
        if self._session.state != SessionState.SAMPLING or self.is_sampling:
            return
        if not self._presence.is_present(now):
            return
        sample = self._sampler.read(now)
        if sample is not None:
            self._session, self._last_kind = resume_sample(
                self._session, sample, self._config, self._suspended_while_playing
            )
            if self._last_kind == TickKind.FORWARD_SKIP:
                logger.debug("Position jumped while away on %s", self._session.item_id)
        logger.debug("Viewer back, resuming sampling of %s", self._session.item_id)
        self._resume_timer()

    def _resume_timer(self) -> None:
        self._cancel_timer()
        self._handle = self._scheduler.schedule(
            self.tick,
            self._config.sample_interval_seconds,
            name=f"watch:{self._session.item_id}",
        )

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _notify_now_playing(self) -> None:
        if self._on_now_playing is not None:
            self._on_now_playing(self._session.source_id, self._session.item_id)

    def _notify_cleared(self) -> None:
        if self._on_cleared is not None:
            self._on_cleared(self._session.source_id)
