"""Watch tracking: decides when a viewing counts as a genuine watch.

Components:
- ProgressSampler: reads position/duration/paused from the host player
- skip_detector: pure classification of samples (skip, rewind, pause, normal)
- PresenceGate: idle and visibility gating
- WatchSessionMachine: per-item state machine emitting WatchConfirmed once
- WatchRecorder: applies confirmations to source aggregates
- WatchTracker: per-page routing of host events to the active machine
"""

from channel_notifier.watch.config import WatchConfig
from channel_notifier.watch.machine import WatchSessionMachine
from channel_notifier.watch.presence import PresenceGate
from channel_notifier.watch.recorder import RecordResult, WatchRecorder
from channel_notifier.watch.sampler import PlaybackSource, ProgressSampler
from channel_notifier.watch.schemas import (
    Sample,
    SessionState,
    TickKind,
    WatchConfirmed,
    WatchSession,
)
from channel_notifier.watch.tracker import WatchTracker

__all__ = [
    "PlaybackSource",
    "PresenceGate",
    "ProgressSampler",
    "RecordResult",
    "Sample",
    "SessionState",
    "TickKind",
    "WatchConfig",
    "WatchConfirmed",
    "WatchRecorder",
    "WatchSession",
    "WatchSessionMachine",
    "WatchTracker",
]
