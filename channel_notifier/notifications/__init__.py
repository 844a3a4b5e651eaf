"""Notifications: new-item decisions, dispatch and digest queueing.

Components:
- decide: pure decision table with the first-sight grace window
- NotificationDispatcher: fans out to circuit-broken channels
- DigestQueue: score-tagged digest entries (Redis or in-memory)
- NotificationDecisionPipeline: decision + snapshot write, then side effects
"""

from channel_notifier.notifications.channels import (
    CircuitBreaker,
    CircuitState,
    LogChannel,
    NotificationChannel,
    WebhookChannel,
)
from channel_notifier.notifications.config import NotificationConfig
from channel_notifier.notifications.decision import decide
from channel_notifier.notifications.digest import DigestQueue
from channel_notifier.notifications.dispatcher import NotificationDispatcher, build_channels
from channel_notifier.notifications.pipeline import NotificationDecisionPipeline, PipelineResult
from channel_notifier.notifications.schemas import (
    DecisionReason,
    DigestEntry,
    Notification,
    NotificationDecision,
)

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "DecisionReason",
    "DigestEntry",
    "DigestQueue",
    "LogChannel",
    "Notification",
    "NotificationChannel",
    "NotificationConfig",
    "NotificationDecision",
    "NotificationDecisionPipeline",
    "NotificationDispatcher",
    "PipelineResult",
    "WebhookChannel",
    "build_channels",
    "decide",
]
