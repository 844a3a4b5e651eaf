"""Fixtures for notification tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from channel_notifier.feeds.schemas import FeedEntry
from channel_notifier.notifications.channels import NotificationChannel
from channel_notifier.notifications.schemas import Notification


@pytest.fixture
def sample_notification():
    return Notification(
        kind="new_item",
        source_id="UC" + "a" * 22,
        source_name="Test Channel",
        item_id="dQw4w9WgXcQ",
        title="Newest upload",
        notification_id="test-notification-001",
        created_at=datetime(2026, 3, 4, 18, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def make_entry(now):
    """FeedEntry factory; ``age`` is minutes before ``now``."""

    def _make(item_id="dQw4w9WgXcQ", title="Newest upload", age=2.0):
        return FeedEntry(
            item_id=item_id,
            title=title,
            published_at=now - timedelta(minutes=age),
        )

    return _make


@pytest.fixture
def make_channel():
    def _make(name="test", result=True):
        inner = AsyncMock(spec=NotificationChannel)
        inner.name = name
        inner.send.return_value = result
        return inner

    return _make
