"""Pytest fixtures for channel-notifier tests."""

from datetime import datetime, timedelta, timezone

import pytest

from channel_notifier.config.settings import Settings
from channel_notifier.sources.schemas import (
    ApprovalState,
    LastItem,
    Source,
    WatchPatterns,
)
from channel_notifier.sources.store import InMemorySourceStore

CHANNEL_ID = "UC" + "a" * 22
OTHER_CHANNEL_ID = "UC" + "b" * 22


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        redis_url="redis://localhost:6379/1",  # Use DB 1 for tests
    )


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return datetime(2026, 3, 4, 18, 30, tzinfo=timezone.utc)


@pytest.fixture
def make_source(now):
    """Factory for Source aggregates with sensible defaults."""

    def _make(
        source_id: str = CHANNEL_ID,
        *,
        name: str = "Test Channel",
        count: int = 0,
        first_seen_days_ago: float | None = 30,
        last_watch_days_ago: float | None = None,
        approval_state: ApprovalState = ApprovalState.TRACKING,
        average_watch_percentage: float = 0.0,
        watch_hours: set[int] | None = None,
        watch_days: set[int] | None = None,
        relationship_score: int = 0,
    ) -> Source:
        first_seen = (
            now - timedelta(days=first_seen_days_ago)
            if first_seen_days_ago is not None
            else None
        )
        source = Source(
            id=source_id,
            name=name,
            first_seen_at=first_seen,
            approval_state=approval_state,
            count=count,
            patterns=WatchPatterns(
                watch_hours=set(watch_hours or ()),
                watch_days=set(watch_days or ()),
                average_watch_percentage=average_watch_percentage,
                session_count=count,
            ),
        )
        if last_watch_days_ago is not None:
            source.last_item = LastItem(
                id="lastitem000",
                title="Last",
                timestamp=now - timedelta(days=last_watch_days_ago),
            )
        source.relationship.score = relationship_score
        return source

    return _make


@pytest.fixture
def store() -> InMemorySourceStore:
    """Empty in-memory source store."""
    return InMemorySourceStore()
