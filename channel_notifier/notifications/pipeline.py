"""Notification decision pipeline.

For each polled entry: decide and write the feed snapshot in one atomic
upsert, then run the notification and the digest enqueue independently.
A failure in either one never blocks the other, and neither can undo
the snapshot write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

import structlog

from channel_notifier.errors import ChannelNotifierError
from channel_notifier.feeds.schemas import FeedEntry
from channel_notifier.notifications.config import NotificationConfig
from channel_notifier.notifications.decision import decide
from channel_notifier.notifications.digest import DigestQueue
from channel_notifier.notifications.dispatcher import NotificationDispatcher
from channel_notifier.notifications.schemas import (
    DigestEntry,
    Notification,
    NotificationDecision,
)
from channel_notifier.observability.metrics import get_metrics
from channel_notifier.sources.schemas import FeedSnapshot, Source
from channel_notifier.sources.store import SourceStore

if TYPE_CHECKING:
    from channel_notifier.relationship.schemas import ScoreResult

logger = structlog.get_logger(__name__)

DEFAULT_SCORE = 50


@dataclass
class PipelineResult:
    """What happened to one polled entry."""

    source_id: str
    decision: NotificationDecision | None
    notified: bool = False
    digest_queued: bool = False


class NotificationDecisionPipeline:
    """Turns polled feed entries into notifications.

    Usage:
        pipeline = NotificationDecisionPipeline(store, dispatcher, digest, scorer=service.score)
        result = await pipeline.process(source_id, entry)
    """

    def __init__(
        self,
        store: SourceStore,
        dispatcher: NotificationDispatcher,
        digest: DigestQueue | None = None,
        scorer: Callable[[Source, datetime], "ScoreResult"] | None = None,
        config: NotificationConfig | None = None,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._digest = digest
        self._scorer = scorer
        self._config = config or NotificationConfig()

    async def process(
        self,
        source_id: str,
        entry: FeedEntry | None,
        now: datetime | None = None,
    ) -> PipelineResult:
        """Decide on and act upon one poll result. Never raises."""
        now = now or datetime.now(timezone.utc)
        if entry is None:
            return PipelineResult(source_id=source_id, decision=None)

        decision_box: list[NotificationDecision] = []

        def mutate(current: Source | None) -> Source | None:
            if current is None:
                return None
            decision_box.append(
                decide(
                    entry,
                    current.feed,
                    current.approval_state,
                    now,
                    self._config.first_sight_grace_seconds,
                )
            )
            current.feed = FeedSnapshot(
                last_seen_item_id=entry.item_id,
                last_seen_item_title=entry.title,
                last_seen_item_published_at=entry.published_at,
                last_polled_at=now,
            )
            return current

        try:
            source = await self._store.upsert(source_id, mutate)
        except ChannelNotifierError as e:
            logger.warning("Feed snapshot update failed", source_id=source_id, error=str(e))
            return PipelineResult(source_id=source_id, decision=None)

        if source is None or not decision_box:
            logger.info("Polled source no longer exists", source_id=source_id)
            return PipelineResult(source_id=source_id, decision=None)

        decision = decision_box[0]
        get_metrics().record_decision(decision.reason.value)
        result = PipelineResult(source_id=source_id, decision=decision)

        if not decision.notify:
            logger.debug(
                "No notification",
                source_id=source_id,
                item_id=entry.item_id,
                reason=decision.reason.value,
            )
            return result

        logger.info(
            "New item detected",
            source_id=source_id,
            item_id=entry.item_id,
            title=entry.title,
            reason=decision.reason.value,
        )
        result.notified = await self._notify(source, entry, now)
        result.digest_queued = await self._enqueue_digest(source, entry, now)
        return result

    async def _notify(self, source: Source, entry: FeedEntry, now: datetime) -> bool:
        notification = Notification(
            kind="new_item",
            source_id=source.id,
            source_name=source.name,
            item_id=entry.item_id,
            title=entry.title,
            created_at=now,
        )
        try:
            results = await self._dispatcher.notify(notification)
        except Exception as e:
            logger.warning("Notification dispatch failed", source_id=source.id, error=str(e))
            return False
        return any(ok for _, ok in results)

    async def _enqueue_digest(self, source: Source, entry: FeedEntry, now: datetime) -> bool:
        if self._digest is None:
            return False
        try:
            score = self._relationship_score(source, now)
            digest_entry = DigestEntry(
                source_id=source.id,
                source_name=source.name,
                item_id=entry.item_id,
                title=entry.title,
                published_at=entry.published_at,
                relationship_score=score,
                priority=self._digest.priority_for(score),
                queued_at=now,
            )
            return await self._digest.enqueue(digest_entry)
        except Exception as e:
            logger.warning("Digest enqueue failed", source_id=source.id, error=str(e))
            return False

    def _relationship_score(self, source: Source, now: datetime) -> int:
        if self._scorer is not None:
            return self._scorer(source, now).score
        return source.relationship.score or DEFAULT_SCORE
