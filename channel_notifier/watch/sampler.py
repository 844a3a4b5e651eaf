"""Reads playback state from the host player."""

import logging
import math
from typing import Protocol

from channel_notifier.watch.schemas import Sample

logger = logging.getLogger(__name__)


class PlaybackSource(Protocol):
    """What the host page exposes about its video element."""

    def current_position(self) -> float: ...

    def duration(self) -> float: ...

    def is_paused(self) -> bool: ...


class ProgressSampler:
    """Turns player readings into Samples.

    Returns None while the player cannot report a usable duration
    (metadata not loaded, live stream, element gone).
    """

    def __init__(self, player: PlaybackSource) -> None:
        self._player = player

    def read(self, now: float) -> Sample | None:
        try:
            position = float(self._player.current_position())
            duration = float(self._player.duration())
            paused = bool(self._player.is_paused())
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug("Player reading failed: %s", e)
            return None

        if not math.isfinite(duration) or duration <= 0:
            return None
        if not math.isfinite(position) or position < 0:
            return None
        return Sample(position=position, duration=duration, paused=paused, at=now)
