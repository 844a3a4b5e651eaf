"""Notification decision table.

| Condition                                       | Notify |
|-------------------------------------------------|--------|
| source not approved                             | no     |
| nothing seen before, item younger than grace    | yes    |
| nothing seen before, item older than grace      | no     |
| last seen item differs from the newest item     | yes    |
| last seen item equals the newest item           | no     |

The grace rule keeps the first poll of a newly approved source from
announcing back-catalog content.
"""

from datetime import datetime

from channel_notifier.feeds.schemas import FeedEntry
from channel_notifier.notifications.schemas import DecisionReason, NotificationDecision
from channel_notifier.sources.schemas import ApprovalState, FeedSnapshot


def decide(
    entry: FeedEntry,
    snapshot: FeedSnapshot,
    approval_state: ApprovalState,
    now: datetime,
    grace_seconds: float = 300.0,
) -> NotificationDecision:
    """Decide whether ``entry`` warrants a notification."""
    if approval_state != ApprovalState.APPROVED:
        return NotificationDecision(False, DecisionReason.NOT_APPROVED)

    if snapshot.last_seen_item_id is None:
        age = (now - entry.published_at).total_seconds()
        if age < grace_seconds:
            return NotificationDecision(True, DecisionReason.FIRST_SIGHT_FRESH)
        return NotificationDecision(False, DecisionReason.FIRST_SIGHT_STALE)

    if snapshot.last_seen_item_id != entry.item_id:
        return NotificationDecision(True, DecisionReason.NEW_ITEM)
    return NotificationDecision(False, DecisionReason.UNCHANGED)
