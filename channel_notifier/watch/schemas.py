"""Watch-session state and events.

WatchSession is immutable; transitions build a new one with
``dataclasses.replace`` so every step can be tested as a pure function.
"""

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    PAUSE_ONLY = "pause_only"
    CONFIRMED = "confirmed"
    ABANDONED = "abandoned"


TERMINAL_STATES = frozenset({SessionState.CONFIRMED, SessionState.ABANDONED})


class TickKind(str, Enum):
    """Classification of one sample against the previous one."""

    BASELINE = "baseline"
    NORMAL = "normal"
    FORWARD_SKIP = "forward_skip"
    REWIND = "rewind"
    PAUSED = "paused"


@dataclass(frozen=True)
class Sample:
    """One reading of the player.

    Attributes:
        position: Playback position in seconds.
        duration: Item duration in seconds, always positive.
        paused: Player reports paused.
        at: Scheduler time of the reading.
    """

    position: float
    duration: float
    paused: bool
    at: float

    @property
    def progress(self) -> float:
        return min(1.0, max(0.0, self.position / self.duration))


@dataclass(frozen=True)
class WatchSession:
    """Progress of one item while it is being observed.

    ``last_position`` is None until the first valid sample sets the
    baseline. ``continuous_start`` is the position continuous progress
    is measured from; skips and rewinds move it.
    """

    source_id: str
    item_id: str
    title: str = ""
    state: SessionState = SessionState.IDLE
    started_at: float | None = None
    last_sample_at: float | None = None
    last_position: float | None = None
    duration: float | None = None
    continuous_start: float = 0.0
    highest_continuous_progress: float = 0.0
    accumulated_seconds: float = 0.0
    skip_detected: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass(frozen=True)
class WatchConfirmed:
    """A genuine watch of ``item_id``.

    Attributes:
        source_id: Channel the item belongs to.
        item_id: Watched item.
        title: Item title, if known.
        watch_fraction: Playback progress (0-1) when the watch was confirmed.
        watched_seconds: Accumulated playback seconds.
    """

    source_id: str
    item_id: str
    title: str
    watch_fraction: float
    watched_seconds: float
