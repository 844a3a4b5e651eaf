"""Recommendation helpers built on relationship data.

- find_similar_sources: sources that resemble a target in engagement,
  viewing patterns and relationship score
- predict_next_watch: approved sources the user is likely to open next,
  given the current hour and weekday
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from channel_notifier.relationship.config import RelationshipConfig
from channel_notifier.relationship.schemas import SimilarSource, WatchPrediction

if TYPE_CHECKING:
    from channel_notifier.sources.schemas import Source, WatchPatterns

logger = logging.getLogger(__name__)


def _overlap(a: set[int], b: set[int]) -> float | None:
    if not a or not b:
        return None
    return len(a & b) / len(a | b)


def pattern_similarity(p1: WatchPatterns, p2: WatchPatterns) -> float:
    """Mean of the comparable pattern components, 0-1."""
    parts: list[float] = []
    if p1.average_watch_percentage > 0 and p2.average_watch_percentage > 0:
        diff = abs(p1.average_watch_percentage - p2.average_watch_percentage)
        parts.append((100 - diff) / 100)
    hours = _overlap(p1.watch_hours, p2.watch_hours)
    if hours is not None:
        parts.append(hours)
    days = _overlap(p1.watch_days, p2.watch_days)
    if days is not None:
        parts.append(days)
    return sum(parts) / len(parts) if parts else 0.0


def source_similarity(a: Source, b: Source) -> float:
    """Weighted similarity of two sources, 0-1.

    Count similarity carries 0.3, pattern similarity 0.4 and score
    similarity 0.3. The score term only counts when both sources have a
    positive score; the result is normalised by the weights that applied.
    """
    total = 0.0
    weight = 0.0

    largest = max(a.count, b.count)
    if largest > 0:
        total += (1 - abs(a.count - b.count) / largest) * 0.3
        weight += 0.3

    total += pattern_similarity(a.patterns, b.patterns) * 0.4
    weight += 0.4

    s1 = a.relationship.score
    s2 = b.relationship.score
    if s1 > 0 and s2 > 0:
        total += (1 - abs(s1 - s2) / 100) * 0.3
        weight += 0.3

    return total / weight if weight > 0 else 0.0


def find_similar_sources(
    target_id: str,
    sources: list[Source],
    max_results: int = 3,
    config: RelationshipConfig | None = None,
) -> list[SimilarSource]:
    """Return up to ``max_results`` sources most similar to the target."""
    cfg = config or RelationshipConfig()
    by_id = {s.id: s for s in sources}
    target = by_id.get(target_id)
    if target is None:
        return []

    scored: list[tuple[float, Source]] = []
    for candidate in sources:
        if candidate.id == target_id or candidate.count < cfg.similarity_min_count:
            continue
        similarity = source_similarity(target, candidate)
        if similarity > cfg.similarity_min:
            scored.append((similarity, candidate))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [
        SimilarSource(source_id=s.id, name=s.name, similarity=round(sim * 100))
        for sim, s in scored[:max_results]
    ]


def _recency_sweet_spot(days_since_last: float) -> float:
    # A watch one to three days ago is the most predictive
    if 1 <= days_since_last <= 3:
        return 0.8
    if days_since_last <= 7:
        return 0.6
    if days_since_last <= 14:
        return 0.4
    return 0.2


def _suggested_hour(hours: set[int], current_hour: int) -> int | None:
    """Next usual watch hour at or after the current hour, wrapping midnight."""
    if not hours:
        return None
    return min(hours, key=lambda h: (h - current_hour) % 24)


def watch_probability(source: Source, now: datetime) -> WatchPrediction:
    """Estimate how likely the user is to watch ``source`` around ``now``."""
    hour = now.hour
    weekday = now.isoweekday() % 7
    factors: dict[str, float] = {}

    relationship = source.relationship.score / 100
    probability = relationship * 0.4
    factors["relationship"] = relationship

    patterns = source.patterns
    if patterns.watch_hours:
        hour_match = 0.8 if hour in patterns.watch_hours else 0.2
        probability += hour_match * 0.3
        factors["time_match"] = hour_match

    if patterns.watch_days:
        day_match = 0.8 if weekday in patterns.watch_days else 0.2
        probability += day_match * 0.2
        factors["day_match"] = day_match

    if source.last_item is not None:
        days = (now - source.last_item.timestamp).total_seconds() / 86400
        recency = _recency_sweet_spot(days)
        probability += recency * 0.1
        factors["recency"] = recency

    return WatchPrediction(
        source_id=source.id,
        name=source.name,
        probability=min(1.0, probability),
        factors=factors,
        suggested_hour=_suggested_hour(patterns.watch_hours, hour),
    )


def predict_next_watch(
    sources: list[Source],
    now: datetime,
    max_results: int = 5,
    config: RelationshipConfig | None = None,
) -> list[WatchPrediction]:
    """Rank approved sources by watch probability for the current hour."""
    cfg = config or RelationshipConfig()
    predictions = []
    for source in sources:
        if not source.is_approved or source.count < cfg.prediction_min_count:
            continue
        prediction = watch_probability(source, now)
        if prediction.probability > cfg.prediction_min_probability:
            predictions.append(prediction)

    predictions.sort(key=lambda p: p.probability, reverse=True)
    logger.debug("Predicted %d of %d sources", len(predictions), len(sources))
    return predictions[:max_results]
