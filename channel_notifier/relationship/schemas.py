"""Result types for relationship scoring and its helpers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Trend(str, Enum):
    GROWING = "growing"
    STABLE = "stable"
    DECLINING = "declining"


class Badge(str, Enum):
    FAVORITE = "Favorite"
    REGULAR = "Regular"
    CASUAL = "Casual"
    NEW = "New"
    DORMANT = "Dormant"


@dataclass(frozen=True)
class ScoreResult:
    """Output of RelationshipScoreEngine.score().

    Attributes:
        score: Integer 0-100.
        factors: Per-factor values (0-100). Empty for a fallback result.
        trend: Direction read off the growth factor.
        badge: Label for the score band.
        fallback: True when inputs were incomplete and the count-based
            fallback was returned instead.
    """

    score: int
    factors: dict[str, float] = field(default_factory=dict)
    trend: Trend = Trend.STABLE
    badge: Badge = Badge.CASUAL
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "factors": dict(self.factors),
            "trend": self.trend.value,
            "badge": self.badge.value,
            "fallback": self.fallback,
        }


@dataclass(frozen=True)
class SimilarSource:
    """A source resembling the target, with similarity as a 0-100 integer."""

    source_id: str
    name: str
    similarity: int


@dataclass(frozen=True)
class WatchPrediction:
    """A source the user is likely to watch soon.

    Attributes:
        source_id: Predicted source.
        name: Display name.
        probability: 0-1 likelihood estimate.
        factors: Components that made up the probability.
        suggested_hour: Hour of day the user usually watches, if known.
    """

    source_id: str
    name: str
    probability: float
    factors: dict[str, float] = field(default_factory=dict)
    suggested_hour: int | None = None
