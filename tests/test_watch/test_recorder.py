"""Tests for WatchRecorder."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from channel_notifier.errors import TransientIOError
from channel_notifier.relationship.cache import ScoreCache
from channel_notifier.relationship.schemas import Badge, ScoreResult, Trend
from channel_notifier.sources.config import SourcesConfig
from channel_notifier.sources.schemas import ApprovalState
from channel_notifier.watch.recorder import WatchRecorder
from channel_notifier.watch.schemas import WatchConfirmed

SOURCE_ID = "UC" + "a" * 22


def _event(item_id: str, title: str = "A video", fraction: float = 0.6) -> WatchConfirmed:
    return WatchConfirmed(
        source_id=SOURCE_ID,
        item_id=item_id,
        title=title,
        watch_fraction=fraction,
        watched_seconds=120.0,
    )


def _item(i: int) -> str:
    return f"item{i:07d}"


@pytest.fixture
def dispatcher():
    mock = MagicMock()
    mock.request_approval = AsyncMock(return_value=[("log", True)])
    return mock


@pytest.fixture
def recorder(store, dispatcher):
    return WatchRecorder(store, config=SourcesConfig(), dispatcher=dispatcher)


class TestRecord:
    @pytest.mark.asyncio
    async def test_first_watch_creates_source(self, recorder, store, now):
        result = await recorder.record(_event(_item(0)), source_name="Chan", now=now)

        assert result.recorded is True
        assert result.created is True
        source = await store.get(SOURCE_ID)
        assert source.name == "Chan"
        assert source.count == 1
        assert source.first_seen_at == now
        assert source.approval_state == ApprovalState.TRACKING
        assert source.last_item.id == _item(0)
        assert source.patterns.session_count == 1
        assert source.patterns.average_watch_percentage == pytest.approx(60.0)

    @pytest.mark.asyncio
    async def test_duplicate_is_rejected(self, recorder, store, now):
        await recorder.record(_event(_item(0)), now=now)
        result = await recorder.record(_event(_item(0)), now=now)

        assert result.recorded is False
        assert result.duplicate is True
        assert (await store.get(SOURCE_ID)).count == 1

    @pytest.mark.asyncio
    async def test_fifo_cap_keeps_count_growing(self, recorder, store, now):
        for i in range(11):
            result = await recorder.record(_event(_item(i)), now=now)

        assert result.evicted == [_item(0)]
        source = await store.get(SOURCE_ID)
        assert len(source.watched_item_ids) == 10
        assert source.watched_item_ids[0] == _item(1)
        assert source.count == 11

    @pytest.mark.asyncio
    async def test_evicted_item_can_be_recorded_again(self, recorder, store, now):
        for i in range(11):
            await recorder.record(_event(_item(i)), now=now)

        result = await recorder.record(_event(_item(0)), now=now)

        assert result.recorded is True
        assert (await store.get(SOURCE_ID)).count == 12

    @pytest.mark.asyncio
    async def test_fills_missing_first_seen(self, store, make_source, now):
        await store.upsert(SOURCE_ID, lambda current: make_source(first_seen_days_ago=None))
        recorder = WatchRecorder(store)

        await recorder.record(_event(_item(0)), now=now)

        assert (await store.get(SOURCE_ID)).first_seen_at == now

    @pytest.mark.asyncio
    async def test_store_failure_is_reported(self, now):
        store = MagicMock()
        store.upsert = AsyncMock(side_effect=TransientIOError("down"))
        recorder = WatchRecorder(store)

        result = await recorder.record(_event(_item(0)), now=now)

        assert result.recorded is False
        assert result.duplicate is False


class TestApprovalPrompt:
    @pytest.mark.asyncio
    async def test_ready_at_threshold_prompts_once(self, recorder, store, dispatcher, now):
        results = [await recorder.record(_event(_item(i)), now=now) for i in range(12)]
        await recorder.drain()

        assert [r.became_ready for r in results].index(True) == 9
        source = await store.get(SOURCE_ID)
        assert source.approval_state == ApprovalState.READY
        assert source.approval_prompted is True
        dispatcher.request_approval.assert_awaited_once()
        prompted = dispatcher.request_approval.await_args.args[0]
        assert prompted.id == SOURCE_ID

    @pytest.mark.asyncio
    async def test_prompt_failure_does_not_fail_record(self, recorder, dispatcher, now):
        dispatcher.request_approval.side_effect = RuntimeError("channel down")

        results = [await recorder.record(_event(_item(i)), now=now) for i in range(10)]
        await recorder.drain()

        assert results[-1].recorded is True
        assert results[-1].became_ready is True

    @pytest.mark.asyncio
    async def test_approved_source_is_not_prompted(self, store, dispatcher, make_source, now):
        await store.upsert(
            SOURCE_ID,
            lambda current: make_source(count=20, approval_state=ApprovalState.APPROVED),
        )
        recorder = WatchRecorder(store, dispatcher=dispatcher)

        await recorder.record(_event(_item(0)), now=now)
        await recorder.drain()

        dispatcher.request_approval.assert_not_awaited()


class TestScoreCache:
    @pytest.mark.asyncio
    async def test_record_invalidates_cached_score(self, store, now):
        cache = ScoreCache()
        cache.put(SOURCE_ID, ScoreResult(score=10, factors={}, trend=Trend.STABLE, badge=Badge.DORMANT))
        recorder = WatchRecorder(store, score_cache=cache)

        await recorder.record(_event(_item(0)), now=now)

        assert cache.get(SOURCE_ID) is None
