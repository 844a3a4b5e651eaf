"""Relationship score engine.

Scores a source's watch history on five 0-100 factors and combines them
with configured weights:

- frequency: confirmed watches per day since first seen
- recency: days since the last confirmed watch
- depth: average watch percentage, or a count-based estimate
- loyalty: watches against an expected one-per-week baseline
- growth: last-30-day watch rate against the lifetime rate

``score()`` is a pure function of the Source snapshot and ``now``. It never
raises: a snapshot missing a required field yields the count-based
fallback ``min(count * 8, 100)`` with badge Casual.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from channel_notifier.errors import InvariantViolationError, ScoreInputError
from channel_notifier.relationship.config import RelationshipConfig
from channel_notifier.relationship.schemas import Badge, ScoreResult, Trend

if TYPE_CHECKING:
    from channel_notifier.sources.schemas import Source

logger = logging.getLogger(__name__)

_DAY_SECONDS = 86400.0
_PER_WEEK = 1 / 7
_PER_MONTH = 1 / 30
_GROWTH_WINDOW_DAYS = 30


def _days_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / _DAY_SECONDS


def _lerp(x: float, x0: float, x1: float, y0: float, y1: float) -> float:
    return y0 + (x - x0) * (y1 - y0) / (x1 - x0)


def frequency_factor(count: int, days_since_first_seen: float) -> float:
    """Watches per day on a piecewise scale.

    >=1/day -> 100, 1/week..1/day -> 50..100, 1/month..1/week -> 25..50,
    below that 0..25.
    """
    rate = count / max(1.0, days_since_first_seen)
    if rate >= 1:
        return 100.0
    if rate >= _PER_WEEK:
        return _lerp(rate, _PER_WEEK, 1.0, 50.0, 100.0)
    if rate >= _PER_MONTH:
        return _lerp(rate, _PER_MONTH, _PER_WEEK, 25.0, 50.0)
    return max(0.0, _lerp(rate, 0.0, _PER_MONTH, 0.0, 25.0))


def recency_factor(days_since_last: float | None) -> float:
    """100 within a day, falling to 70 at a week, 30 at a month, 0 at 90 days."""
    if days_since_last is None:
        return 0.0
    if days_since_last <= 1:
        return 100.0
    if days_since_last <= 7:
        return _lerp(days_since_last, 1, 7, 100.0, 70.0)
    if days_since_last <= 30:
        return _lerp(days_since_last, 7, 30, 70.0, 30.0)
    if days_since_last <= 90:
        return _lerp(days_since_last, 30, 90, 30.0, 0.0)
    return 0.0


def depth_factor(average_watch_percentage: float, count: int) -> float:
    if average_watch_percentage > 0:
        return min(100.0, average_watch_percentage)
    if count >= 10:
        return 70.0
    if count >= 5:
        return 60.0
    return 50.0


def loyalty_factor(count: int, days_since_first_seen: float) -> float:
    if count <= 1:
        return 0.0
    expected_returns = max(1, int(max(1.0, days_since_first_seen) // 7))
    ratio = min(2.0, count / expected_returns)
    return float(round(ratio * 50))


def growth_factor(
    count: int,
    days_since_first_seen: float,
    recent_count: int | None,
) -> float:
    """Recent watch rate against the lifetime rate.

    ``recent_count`` is the number of watched items in the last 30 days;
    None means there is no per-item history to compare.
    """
    if recent_count is None or count < 3:
        return 50.0
    overall_rate = count / max(float(_GROWTH_WINDOW_DAYS), days_since_first_seen)
    recent_rate = recent_count / _GROWTH_WINDOW_DAYS
    if recent_rate > overall_rate * 1.5:
        return 80.0
    if recent_rate > overall_rate * 1.2:
        return 65.0
    if recent_rate > overall_rate * 0.8:
        return 50.0
    if recent_rate > overall_rate * 0.5:
        return 35.0
    return 20.0


def trend_for(growth: float) -> Trend:
    if growth > 65:
        return Trend.GROWING
    if growth < 35:
        return Trend.DECLINING
    return Trend.STABLE


class RelationshipScoreEngine:
    """Compute relationship scores for sources.

    Usage:
        engine = RelationshipScoreEngine()
        result = engine.score(source, now=datetime.now(timezone.utc))
        result.score, result.badge, result.trend
    """

    def __init__(self, config: RelationshipConfig | None = None) -> None:
        self._config = config or RelationshipConfig()

    @property
    def config(self) -> RelationshipConfig:
        return self._config

    def badge_for(self, score: float) -> Badge:
        cfg = self._config
        if score >= cfg.badge_favorite:
            return Badge.FAVORITE
        if score >= cfg.badge_regular:
            return Badge.REGULAR
        if score >= cfg.badge_casual:
            return Badge.CASUAL
        if score >= cfg.badge_new:
            return Badge.NEW
        return Badge.DORMANT

    def fallback(self, source: Source) -> ScoreResult:
        """Deterministic result for snapshots that cannot be scored."""
        count = source.count if isinstance(source.count, int) else 0
        return ScoreResult(
            score=max(0, min(count * 8, 100)),
            factors={},
            trend=Trend.STABLE,
            badge=Badge.CASUAL,
            fallback=True,
        )

    def factors(self, source: Source, now: datetime) -> dict[str, float]:
        """Compute the five factors.

        Raises:
            ScoreInputError: If the snapshot lacks a required field.
        """
        if source.first_seen_at is None:
            raise ScoreInputError(f"Source {source.id!r} has no first_seen_at")
        if not isinstance(source.count, int) or source.count < 0:
            raise ScoreInputError(f"Source {source.id!r} has invalid count {source.count!r}")

        count = source.count
        days_known = max(1.0, _days_between(now, source.first_seen_at))

        days_since_last = None
        if source.last_item is not None:
            days_since_last = max(0.0, _days_between(now, source.last_item.timestamp))

        recent_count = None
        if source.watched_item_data:
            cutoff = now - timedelta(days=_GROWTH_WINDOW_DAYS)
            recent_count = sum(
                1
                for data in source.watched_item_data.values()
                if data.get("timestamp") is not None and data["timestamp"] > cutoff
            )

        return {
            "frequency": frequency_factor(count, days_known),
            "recency": recency_factor(days_since_last),
            "depth": depth_factor(source.patterns.average_watch_percentage, count),
            "loyalty": loyalty_factor(count, days_known),
            "growth": growth_factor(count, days_known, recent_count),
        }

    def score(self, source: Source, now: datetime) -> ScoreResult:
        """Score a source snapshot. Never raises."""
        try:
            factors = self.factors(source, now)
        except InvariantViolationError as e:
            logger.warning("Relationship score fallback: %s", e)
            return self.fallback(source)
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "Relationship score fallback for %s: malformed snapshot (%s)",
                getattr(source, "id", "?"), e,
            )
            return self.fallback(source)

        weights = self._config.weights
        raw = sum(factors[name] * weight for name, weight in weights.items())
        score = max(0, min(100, round(raw)))

        return ScoreResult(
            score=score,
            factors={name: round(value, 2) for name, value in factors.items()},
            trend=trend_for(factors["growth"]),
            badge=self.badge_for(score),
        )
