"""Relationship scoring: how durably the user cares about a source.

Components:
- RelationshipScoreEngine: five-factor weighted 0-100 score, trend and badge
- ScoreCache: TTL cache in front of the engine
- find_similar_sources / predict_next_watch: recommendation helpers
"""

from channel_notifier.relationship.cache import ScoreCache
from channel_notifier.relationship.config import RelationshipConfig
from channel_notifier.relationship.engine import RelationshipScoreEngine
from channel_notifier.relationship.schemas import (
    Badge,
    ScoreResult,
    SimilarSource,
    Trend,
    WatchPrediction,
)
from channel_notifier.relationship.similarity import (
    find_similar_sources,
    predict_next_watch,
)

__all__ = [
    "Badge",
    "RelationshipConfig",
    "RelationshipScoreEngine",
    "ScoreCache",
    "ScoreResult",
    "SimilarSource",
    "Trend",
    "WatchPrediction",
    "find_similar_sources",
    "predict_next_watch",
]
