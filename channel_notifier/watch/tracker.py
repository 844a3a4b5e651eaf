"""Per-page watch tracking.

A WatchTracker owns at most one WatchSessionMachine at a time. Navigating
to a new item stops the previous machine (abandoning it if it had not
confirmed) and starts a fresh one against the latest stored snapshot of
the source. Confirmations are handed to the WatchRecorder.
"""

import asyncio

import structlog

from channel_notifier.errors import TransientIOError
from channel_notifier.scheduling.scheduler import Scheduler
from channel_notifier.sources.store import SourceStore
from channel_notifier.watch.config import WatchConfig
from channel_notifier.watch.machine import WatchSessionMachine
from channel_notifier.watch.recorder import RecordResult, WatchRecorder
from channel_notifier.watch.sampler import PlaybackSource
from channel_notifier.watch.schemas import WatchConfirmed

logger = structlog.get_logger(__name__)


class WatchTracker:
    """Routes host page events to the active watch session."""

    def __init__(
        self,
        store: SourceStore,
        recorder: WatchRecorder,
        scheduler: Scheduler,
        config: WatchConfig | None = None,
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._scheduler = scheduler
        self._config = config or WatchConfig()
        self._machine: WatchSessionMachine | None = None
        self._source_name = ""
        self._now_playing: dict[str, str] = {}
        self._pending: set[asyncio.Task] = set()
        self._results: list[RecordResult] = []

    @property
    def machine(self) -> WatchSessionMachine | None:
        return self._machine

    @property
    def now_playing(self) -> dict[str, str]:
        """Source id -> item id currently shown as playing."""
        return dict(self._now_playing)

    @property
    def results(self) -> list[RecordResult]:
        """Results of completed recordings, oldest first."""
        return list(self._results)

    async def navigate(
        self,
        source_id: str,
        item_id: str,
        player: PlaybackSource,
        title: str = "",
        source_name: str = "",
    ) -> WatchSessionMachine:
        """Start tracking a new item, stopping the previous one."""
        self.leave()

        already_watched = False
        try:
            source = await self._store.get(source_id)
            already_watched = source is not None and source.has_watched(item_id)
        except TransientIOError as e:
            # Sample anyway; the recorder rejects duplicates
            logger.warning("Source lookup failed", source_id=source_id, error=str(e))

        self._source_name = source_name
        machine = WatchSessionMachine(
            source_id,
            item_id,
            player,
            self._scheduler,
            title=title,
            already_watched=already_watched,
            config=self._config,
            on_confirmed=self._handle_confirmed,
            on_now_playing=self._set_now_playing,
            on_cleared=self._clear_now_playing,
        )
        self._machine = machine
        machine.start()
        logger.debug(
            "Tracking item",
            source_id=source_id,
            item_id=item_id,
            state=machine.state.value,
        )
        return machine

    def leave(self) -> None:
        """Stop the active session, if any."""
        if self._machine is not None:
            self._machine.stop()
            self._machine = None

    # ── Host events ─────────────────────────────────────────────

    def play(self) -> None:
        if self._machine is not None:
            self._machine.on_play()

    def pause(self) -> None:
        if self._machine is not None:
            self._machine.on_pause()

    def seek(self) -> None:
        if self._machine is not None:
            self._machine.on_seek()

    def ended(self) -> None:
        if self._machine is not None:
            self._machine.on_ended()

    def user_input(self) -> None:
        if self._machine is not None:
            self._machine.on_user_input()

    def visibility(self, visible: bool) -> None:
        if self._machine is not None:
            self._machine.on_visibility_change(visible)

    # ── Callbacks ───────────────────────────────────────────────

    def _handle_confirmed(self, event: WatchConfirmed) -> None:
        task = asyncio.get_running_loop().create_task(
            self._recorder.record(event, source_name=self._source_name)
        )
        self._pending.add(task)
        task.add_done_callback(self._record_done)

    def _record_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is None:
            self._results.append(task.result())

    def _set_now_playing(self, source_id: str, item_id: str) -> None:
        self._now_playing[source_id] = item_id

    def _clear_now_playing(self, source_id: str) -> None:
        self._now_playing.pop(source_id, None)

    async def drain(self) -> None:
        """Wait for in-flight recordings."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self._recorder.drain()
