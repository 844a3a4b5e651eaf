"""Fixtures for watch tracking tests.

FakePlayer derives its position from the ManualScheduler clock, so
advancing virtual time plays the item.
"""

import pytest

from channel_notifier.scheduling.scheduler import ManualScheduler
from channel_notifier.watch.config import WatchConfig


class FakePlayer:
    """Player whose position advances with scheduler time while playing."""

    def __init__(self, scheduler, duration=600.0, position=0.0, paused=False):
        self._scheduler = scheduler
        self._duration = duration
        self._base = position
        self._t0 = scheduler.now()
        self.paused = paused

    def current_position(self) -> float:
        if self.paused:
            return self._base
        elapsed = self._scheduler.now() - self._t0
        return min(self._duration, self._base + elapsed)

    def duration(self) -> float:
        return self._duration

    def is_paused(self) -> bool:
        return self.paused

    def seek(self, position: float) -> None:
        self._base = position
        self._t0 = self._scheduler.now()

    def pause(self) -> None:
        self._base = self.current_position()
        self.paused = True

    def play(self) -> None:
        self._t0 = self._scheduler.now()
        self.paused = False


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def watch_config():
    return WatchConfig()


@pytest.fixture
def make_player(scheduler):
    def _make(duration=600.0, position=0.0, paused=False):
        return FakePlayer(scheduler, duration=duration, position=position, paused=paused)

    return _make
