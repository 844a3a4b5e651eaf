"""Applies WatchConfirmed events to source aggregates.

Each confirmation is one atomic upsert: create the source on first sight,
reject duplicates, append the item with FIFO eviction, bump the count,
update patterns and promote tracking -> ready at the threshold. The
score cache entry for the source is dropped afterwards.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from channel_notifier.errors import ChannelNotifierError, DuplicateWatchError
from channel_notifier.observability.metrics import get_metrics
from channel_notifier.sources.config import SourcesConfig
from channel_notifier.sources.schemas import ApprovalState, LastItem, Source
from channel_notifier.sources.store import SourceStore
from channel_notifier.watch.schemas import WatchConfirmed

if TYPE_CHECKING:
    from channel_notifier.notifications.dispatcher import NotificationDispatcher
    from channel_notifier.relationship.cache import ScoreCache

logger = structlog.get_logger(__name__)


@dataclass
class RecordResult:
    """Outcome of recording one confirmed watch.

    Attributes:
        recorded: The watch was applied.
        source: Source after the update (None if the store failed).
        duplicate: The item was already recorded for the source.
        created: This watch created the source.
        became_ready: This watch promoted the source to ready.
        evicted: Item ids pushed out of the watched list.
    """

    recorded: bool
    source: Source | None = None
    duplicate: bool = False
    created: bool = False
    became_ready: bool = False
    evicted: list[str] = field(default_factory=list)


class WatchRecorder:
    """Records confirmed watches into the source store."""

    def __init__(
        self,
        store: SourceStore,
        config: SourcesConfig | None = None,
        score_cache: "ScoreCache | None" = None,
        dispatcher: "NotificationDispatcher | None" = None,
    ) -> None:
        self._store = store
        self._config = config or SourcesConfig()
        self._cache = score_cache
        self._dispatcher = dispatcher
        self._background: set[asyncio.Task] = set()

    async def record(
        self,
        event: WatchConfirmed,
        source_name: str = "",
        now: datetime | None = None,
    ) -> RecordResult:
        """Apply a confirmed watch. Never raises."""
        now = now or datetime.now(timezone.utc)
        result = RecordResult(recorded=False)

        def mutate(current: Source | None) -> Source:
            if current is None:
                current = Source(
                    id=event.source_id,
                    name=source_name or event.source_id,
                    first_seen_at=now,
                )
                result.created = True
            elif current.has_watched(event.item_id):
                raise DuplicateWatchError(event.source_id, event.item_id)

            if source_name and current.name != source_name:
                current.name = source_name
            if current.first_seen_at is None:
                current.first_seen_at = now

            result.evicted = current.add_watched(
                event.item_id, event.title, now, self._config.max_watched_items
            )
            current.count += 1
            current.last_item = LastItem(id=event.item_id, title=event.title, timestamp=now)
            current.patterns.record(now.astimezone(), event.watch_fraction)

            if (
                current.approval_state == ApprovalState.TRACKING
                and current.count >= self._config.ready_threshold
            ):
                current.transition_to(ApprovalState.READY, now)
                result.became_ready = True
            return current

        try:
            source = await self._store.upsert(event.source_id, mutate)
        except DuplicateWatchError as e:
            logger.warning(
                "Duplicate watch confirmation ignored",
                source_id=e.source_id,
                item_id=e.item_id,
            )
            get_metrics().record_watch("duplicate")
            return RecordResult(recorded=False, duplicate=True)
        except ChannelNotifierError as e:
            logger.warning(
                "Failed to record watch",
                source_id=event.source_id,
                item_id=event.item_id,
                error=str(e),
            )
            get_metrics().record_watch("error")
            return RecordResult(recorded=False)

        result.recorded = True
        result.source = source
        get_metrics().record_watch("recorded")
        if self._cache is not None:
            self._cache.invalidate(event.source_id)

        logger.info(
            "Watch recorded",
            source_id=source.id,
            item_id=event.item_id,
            count=source.count,
            approval_state=source.approval_state.value,
        )

        if result.became_ready or (
            source.approval_state == ApprovalState.READY and not source.approval_prompted
        ):
            await self._prompt_approval(source)
        return result

    async def _prompt_approval(self, source: Source) -> None:
        if self._dispatcher is None:
            return

        def mark(current: Source | None) -> Source | None:
            if current is None or current.approval_prompted:
                return None
            current.approval_prompted = True
            return current

        try:
            await self._store.upsert(source.id, mark)
        except ChannelNotifierError as e:
            logger.warning("Failed to mark approval prompt", source_id=source.id, error=str(e))
            return

        # Fire-and-forget: the prompt must not delay the recorder
        task = asyncio.create_task(self._dispatcher.request_approval(source))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for outstanding approval prompts."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
