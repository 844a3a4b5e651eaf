"""Tests for the notification decision pipeline."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from channel_notifier.errors import TransientIOError
from channel_notifier.notifications.digest import DigestQueue
from channel_notifier.notifications.pipeline import NotificationDecisionPipeline
from channel_notifier.notifications.schemas import DecisionReason
from channel_notifier.relationship.schemas import Badge, ScoreResult, Trend
from channel_notifier.sources.schemas import ApprovalState, FeedSnapshot
from channel_notifier.sources.store import InMemorySourceStore

SOURCE_ID = "UC" + "a" * 22


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.notify = AsyncMock(return_value=[("log", True)])
    return mock


@pytest.fixture
def approved_store(make_source):
    return InMemorySourceStore([make_source(approval_state=ApprovalState.APPROVED)])


@pytest.fixture
def digest():
    return DigestQueue()


@pytest.fixture
def pipeline(approved_store, dispatcher, digest):
    return NotificationDecisionPipeline(approved_store, dispatcher, digest)


class TestProcess:
    @pytest.mark.asyncio
    async def test_stale_first_sighting_records_snapshot_only(
        self, pipeline, approved_store, dispatcher, make_entry, now
    ):
        entry = make_entry(age=20)

        result = await pipeline.process(SOURCE_ID, entry, now)

        assert result.decision.reason == DecisionReason.FIRST_SIGHT_STALE
        dispatcher.notify.assert_not_awaited()
        feed = (await approved_store.get(SOURCE_ID)).feed
        assert feed.last_seen_item_id == entry.item_id
        assert feed.last_seen_item_title == entry.title
        assert feed.last_polled_at == now

    @pytest.mark.asyncio
    async def test_fresh_first_sighting_notifies_and_queues(
        self, pipeline, dispatcher, digest, make_entry, now
    ):
        result = await pipeline.process(SOURCE_ID, make_entry(age=2), now)

        assert result.notified is True
        assert result.digest_queued is True
        notification = dispatcher.notify.await_args.args[0]
        assert notification.kind == "new_item"
        assert notification.item_id == "dQw4w9WgXcQ"
        assert [e.item_id for e in await digest.entries()] == ["dQw4w9WgXcQ"]

    @pytest.mark.asyncio
    async def test_same_item_twice_notifies_once(self, pipeline, dispatcher, make_entry, now):
        entry = make_entry(age=1)

        first = await pipeline.process(SOURCE_ID, entry, now)
        second = await pipeline.process(SOURCE_ID, entry, now + timedelta(minutes=30))

        assert first.notified is True
        assert second.decision.reason == DecisionReason.UNCHANGED
        assert dispatcher.notify.await_count == 1

    @pytest.mark.asyncio
    async def test_new_item_after_snapshot(self, make_source, dispatcher, make_entry, now):
        source = make_source(approval_state=ApprovalState.APPROVED)
        source.feed = FeedSnapshot(last_seen_item_id="9bZkp7q19f0")
        store = InMemorySourceStore([source])
        pipeline = NotificationDecisionPipeline(store, dispatcher)

        result = await pipeline.process(SOURCE_ID, make_entry(age=120), now)

        assert result.decision.reason == DecisionReason.NEW_ITEM
        assert result.notified is True
        assert result.digest_queued is False

    @pytest.mark.asyncio
    async def test_unapproved_source_updates_snapshot(self, make_source, dispatcher, make_entry, now):
        store = InMemorySourceStore([make_source(approval_state=ApprovalState.READY)])
        pipeline = NotificationDecisionPipeline(store, dispatcher)

        result = await pipeline.process(SOURCE_ID, make_entry(age=1), now)

        assert result.decision.reason == DecisionReason.NOT_APPROVED
        dispatcher.notify.assert_not_awaited()
        assert (await store.get(SOURCE_ID)).feed.last_seen_item_id == "dQw4w9WgXcQ"

    @pytest.mark.asyncio
    async def test_no_entry_changes_nothing(self, pipeline, approved_store, now):
        result = await pipeline.process(SOURCE_ID, None, now)

        assert result.decision is None
        assert (await approved_store.get(SOURCE_ID)).feed.last_polled_at is None

    @pytest.mark.asyncio
    async def test_missing_source(self, dispatcher, make_entry, now):
        pipeline = NotificationDecisionPipeline(InMemorySourceStore(), dispatcher)

        result = await pipeline.process(SOURCE_ID, make_entry(), now)

        assert result.decision is None
        dispatcher.notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_store_failure_is_contained(self, dispatcher, make_entry, now):
        store = MagicMock()
        store.upsert = AsyncMock(side_effect=TransientIOError("redis down"))
        pipeline = NotificationDecisionPipeline(store, dispatcher)

        result = await pipeline.process(SOURCE_ID, make_entry(), now)

        assert result.decision is None


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_notify_failure_still_queues_digest(
        self, approved_store, dispatcher, digest, make_entry, now
    ):
        dispatcher.notify.side_effect = RuntimeError("dispatcher down")
        pipeline = NotificationDecisionPipeline(approved_store, dispatcher, digest)

        result = await pipeline.process(SOURCE_ID, make_entry(), now)

        assert result.notified is False
        assert result.digest_queued is True
        assert (await approved_store.get(SOURCE_ID)).feed.last_seen_item_id == "dQw4w9WgXcQ"

    @pytest.mark.asyncio
    async def test_digest_failure_still_notifies(
        self, approved_store, dispatcher, make_entry, now
    ):
        digest = MagicMock()
        digest.priority_for.return_value = "normal"
        digest.enqueue = AsyncMock(side_effect=RuntimeError("queue down"))
        pipeline = NotificationDecisionPipeline(approved_store, dispatcher, digest)

        result = await pipeline.process(SOURCE_ID, make_entry(), now)

        assert result.notified is True
        assert result.digest_queued is False

    @pytest.mark.asyncio
    async def test_scorer_sets_digest_priority(
        self, approved_store, dispatcher, digest, make_entry, now
    ):
        def scorer(source, at):
            return ScoreResult(score=91, factors={}, trend=Trend.GROWING, badge=Badge.FAVORITE)

        pipeline = NotificationDecisionPipeline(approved_store, dispatcher, digest, scorer=scorer)

        await pipeline.process(SOURCE_ID, make_entry(), now)

        [entry] = await digest.entries()
        assert entry.relationship_score == 91
        assert entry.priority == "high"

    @pytest.mark.asyncio
    async def test_default_score_without_scorer(
        self, approved_store, dispatcher, digest, make_entry, now
    ):
        pipeline = NotificationDecisionPipeline(approved_store, dispatcher, digest)

        await pipeline.process(SOURCE_ID, make_entry(), now)

        [entry] = await digest.entries()
        assert entry.relationship_score == 50
        assert entry.priority == "normal"
