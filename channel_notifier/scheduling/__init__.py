"""Cancellable periodic scheduling.

Components:
- TaskHandle: returned by schedule(); cancel() stops further runs
- Scheduler: ABC with now() and schedule(fn, interval)
- AsyncioScheduler: event-loop backed implementation for services
- ManualScheduler: virtual-time implementation for deterministic tests
"""

from channel_notifier.scheduling.scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    Scheduler,
    TaskHandle,
)

__all__ = [
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "TaskHandle",
]
