"""Tests for WatchTracker."""

import pytest

from channel_notifier.watch.recorder import WatchRecorder
from channel_notifier.watch.schemas import SessionState
from channel_notifier.watch.tracker import WatchTracker

SOURCE_ID = "UC" + "a" * 22
ITEM_ID = "dQw4w9WgXcQ"
OTHER_ITEM_ID = "9bZkp7q19f0"


@pytest.fixture
def tracker(store, scheduler, watch_config):
    return WatchTracker(store, WatchRecorder(store), scheduler, watch_config)


class TestWatchTracker:
    @pytest.mark.asyncio
    async def test_confirmed_watch_is_recorded(self, tracker, store, scheduler, make_player):
        await tracker.navigate(
            SOURCE_ID, ITEM_ID, make_player(duration=100.0),
            title="Song", source_name="Channel",
        )

        scheduler.advance(60.0)
        await tracker.drain()

        assert len(tracker.results) == 1
        assert tracker.results[0].recorded is True
        source = await store.get(SOURCE_ID)
        assert source.name == "Channel"
        assert source.has_watched(ITEM_ID)
        assert source.watched_item_data[ITEM_ID]["title"] == "Song"

    @pytest.mark.asyncio
    async def test_watched_item_is_pause_only(self, tracker, scheduler, make_player):
        await tracker.navigate(SOURCE_ID, ITEM_ID, make_player(duration=100.0))
        scheduler.advance(60.0)
        await tracker.drain()

        machine = await tracker.navigate(SOURCE_ID, ITEM_ID, make_player(duration=100.0))

        assert machine.state == SessionState.PAUSE_ONLY
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_navigation_abandons_previous(self, tracker, scheduler, make_player):
        first = await tracker.navigate(SOURCE_ID, ITEM_ID, make_player())
        scheduler.advance(10.0)

        second = await tracker.navigate(SOURCE_ID, OTHER_ITEM_ID, make_player())

        assert first.state == SessionState.ABANDONED
        assert second.state == SessionState.SAMPLING
        assert tracker.machine is second
        assert scheduler.pending == 1

    @pytest.mark.asyncio
    async def test_now_playing_follows_play_state(self, tracker, make_player):
        await tracker.navigate(SOURCE_ID, ITEM_ID, make_player())
        assert tracker.now_playing == {SOURCE_ID: ITEM_ID}

        tracker.pause()
        assert tracker.now_playing == {}

        tracker.play()
        assert tracker.now_playing == {SOURCE_ID: ITEM_ID}

        tracker.leave()
        assert tracker.now_playing == {}

    @pytest.mark.asyncio
    async def test_events_without_session_are_ignored(self, tracker):
        tracker.play()
        tracker.pause()
        tracker.seek()
        tracker.ended()
        tracker.user_input()
        tracker.visibility(False)

        assert tracker.machine is None
