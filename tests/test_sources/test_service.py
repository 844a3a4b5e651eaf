"""Tests for SourcesService."""

from datetime import timedelta

import pytest

from channel_notifier.errors import InvalidApprovalTransition, SourceNotFoundError
from channel_notifier.sources.config import SourcesConfig
from channel_notifier.sources.schemas import ApprovalState
from channel_notifier.sources.service import SourcesService
from channel_notifier.sources.store import InMemorySourceStore

CHANNEL_ID = "UC" + "a" * 22
OTHER_CHANNEL_ID = "UC" + "b" * 22
THIRD_CHANNEL_ID = "UC" + "c" * 22


# ── Approval ────────────────────────────────────────────────────


class TestApproval:
    @pytest.mark.asyncio
    async def test_approve_ready_source(self, make_source, now):
        store = InMemorySourceStore([make_source(approval_state=ApprovalState.READY)])
        service = SourcesService(store)

        source = await service.approve(CHANNEL_ID, now)

        assert source.approval_state == ApprovalState.APPROVED
        assert source.approved_at == now
        assert (await store.get(CHANNEL_ID)).is_approved

    @pytest.mark.asyncio
    async def test_deny_then_reapprove(self, make_source, now):
        store = InMemorySourceStore([make_source(approval_state=ApprovalState.READY)])
        service = SourcesService(store)

        await service.deny(CHANNEL_ID, now)
        source = await service.approve(CHANNEL_ID, now)

        assert source.approval_state == ApprovalState.APPROVED
        assert source.denied_at == now

    @pytest.mark.asyncio
    async def test_tracking_cannot_be_approved(self, make_source, now):
        store = InMemorySourceStore([make_source()])
        service = SourcesService(store)

        with pytest.raises(InvalidApprovalTransition):
            await service.approve(CHANNEL_ID, now)
        assert (await store.get(CHANNEL_ID)).approval_state == ApprovalState.TRACKING

    @pytest.mark.asyncio
    async def test_unknown_source(self, service, now):
        with pytest.raises(SourceNotFoundError):
            await service.deny(CHANNEL_ID, now)


# ── Badge summary ───────────────────────────────────────────────


class TestBadgeSummary:
    @pytest.mark.asyncio
    async def test_empty_store(self, service):
        summary = await service.badge_summary()

        assert summary.badge is None
        assert summary.badge_count == 0

    @pytest.mark.asyncio
    async def test_ready_takes_priority(self, make_source):
        store = InMemorySourceStore([
            make_source(CHANNEL_ID, approval_state=ApprovalState.APPROVED),
            make_source(OTHER_CHANNEL_ID, approval_state=ApprovalState.READY),
            make_source(THIRD_CHANNEL_ID),
        ])

        summary = await SourcesService(store).badge_summary()

        assert summary.badge == "ready"
        assert summary.badge_count == 1
        assert summary.approved == 1
        assert summary.tracking == 1

    @pytest.mark.asyncio
    async def test_approved_before_tracking(self, make_source):
        store = InMemorySourceStore([
            make_source(CHANNEL_ID, approval_state=ApprovalState.APPROVED),
            make_source(OTHER_CHANNEL_ID, approval_state=ApprovalState.APPROVED),
            make_source(THIRD_CHANNEL_ID),
        ])

        summary = await SourcesService(store).badge_summary()

        assert summary.badge == "approved"
        assert summary.badge_count == 2

    @pytest.mark.asyncio
    async def test_denied_only_has_no_badge(self, make_source):
        store = InMemorySourceStore([make_source(approval_state=ApprovalState.DENIED)])

        summary = await SourcesService(store).badge_summary()

        assert summary.badge is None
        assert summary.denied == 1


# ── Retention ───────────────────────────────────────────────────


class TestCleanup:
    @pytest.mark.asyncio
    async def test_deletes_idle_unapproved_sources(self, make_source, now):
        store = InMemorySourceStore([
            make_source(CHANNEL_ID, first_seen_days_ago=200, last_watch_days_ago=120),
            make_source(OTHER_CHANNEL_ID, first_seen_days_ago=200, last_watch_days_ago=10),
        ])
        service = SourcesService(store, config=SourcesConfig(retention_days=90))

        report = await service.cleanup(now)

        assert report.deleted == [CHANNEL_ID]
        assert await store.get(CHANNEL_ID) is None
        assert await store.get(OTHER_CHANNEL_ID) is not None

    @pytest.mark.asyncio
    async def test_keeps_idle_approved_sources(self, make_source, now):
        store = InMemorySourceStore([
            make_source(
                first_seen_days_ago=400,
                last_watch_days_ago=300,
                approval_state=ApprovalState.APPROVED,
            ),
        ])

        report = await SourcesService(store).cleanup(now)

        assert report.deleted == []

    @pytest.mark.asyncio
    async def test_trims_oversized_watch_lists(self, make_source, now):
        source = make_source(last_watch_days_ago=1)
        for i in range(15):
            source.watched_item_ids.append(f"item{i:07d}")
            source.watched_item_data[f"item{i:07d}"] = {"title": "", "timestamp": now}
        store = InMemorySourceStore([source])

        report = await SourcesService(store).cleanup(now)

        assert report.trimmed == [CHANNEL_ID]
        stored = await store.get(CHANNEL_ID)
        assert len(stored.watched_item_ids) == 10
        assert stored.watched_item_ids[0] == "item0000005"

    @pytest.mark.asyncio
    async def test_deleted_source_leaves_score_cache(self, make_source, now):
        store = InMemorySourceStore([
            make_source(first_seen_days_ago=200, last_watch_days_ago=120, count=3),
        ])
        service = SourcesService(store)
        service.score(await store.get(CHANNEL_ID), now)
        assert len(service.score_cache) == 1

        await service.cleanup(now)

        assert len(service.score_cache) == 0


# ── Relationship ────────────────────────────────────────────────


class TestRelationship:
    @pytest.mark.asyncio
    async def test_refresh_persists_score(self, make_source, now):
        store = InMemorySourceStore([
            make_source(
                count=12,
                first_seen_days_ago=40,
                last_watch_days_ago=0.5,
                average_watch_percentage=75,
            ),
        ])
        service = SourcesService(store)

        source = await service.refresh_relationship(CHANNEL_ID, now)

        assert source.relationship.score > 0
        assert source.relationship.last_score_update_at == now
        stored = await store.get(CHANNEL_ID)
        assert stored.relationship.score == source.relationship.score
        assert set(stored.relationship.factors) == {
            "frequency", "recency", "depth", "loyalty", "growth",
        }

    @pytest.mark.asyncio
    async def test_score_is_cached(self, make_source, now):
        service = SourcesService(InMemorySourceStore())
        source = make_source(count=5, last_watch_days_ago=1)

        first = service.score(source, now)
        source.count = 50
        second = service.score(source, now + timedelta(seconds=10))

        assert first is second

    @pytest.mark.asyncio
    async def test_refresh_all_counts_sources(self, make_source, now):
        store = InMemorySourceStore([
            make_source(CHANNEL_ID, count=2),
            make_source(OTHER_CHANNEL_ID, count=4),
        ])

        assert await SourcesService(store).refresh_all(now) == 2

    @pytest.mark.asyncio
    async def test_refresh_unknown_source(self, service, now):
        with pytest.raises(SourceNotFoundError):
            await service.refresh_relationship(CHANNEL_ID, now)
