"""Sources: tracked channel aggregates and their store."""

from channel_notifier.sources.config import SourcesConfig
from channel_notifier.sources.schemas import (
    ApprovalState,
    FeedSnapshot,
    LastItem,
    Relationship,
    Source,
    WatchPatterns,
)
from channel_notifier.sources.service import BadgeSummary, CleanupReport, SourcesService
from channel_notifier.sources.store import (
    InMemorySourceStore,
    RedisSourceStore,
    SourceStore,
)

__all__ = [
    "ApprovalState",
    "BadgeSummary",
    "CleanupReport",
    "FeedSnapshot",
    "InMemorySourceStore",
    "LastItem",
    "RedisSourceStore",
    "Relationship",
    "Source",
    "SourceStore",
    "SourcesConfig",
    "SourcesService",
    "WatchPatterns",
]
