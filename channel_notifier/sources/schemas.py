"""Schema definitions for tracked sources.

A Source is one channel the user has genuinely watched at least once. It
carries the bounded watch history, the approval state, the viewing
patterns the relationship score reads, and the feed snapshot the
notification pipeline compares against.

Timestamps are timezone-aware UTC datetimes and serialise as ISO strings.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from channel_notifier.errors import InvalidApprovalTransition


class ApprovalState(str, enum.Enum):
    """Where a source sits in the approval lifecycle."""

    TRACKING = "tracking"
    READY = "ready"
    APPROVED = "approved"
    DENIED = "denied"


# tracking -> ready is automatic; everything else is a user action.
ALLOWED_TRANSITIONS: dict[ApprovalState, frozenset[ApprovalState]] = {
    ApprovalState.TRACKING: frozenset({ApprovalState.READY}),
    ApprovalState.READY: frozenset({ApprovalState.APPROVED, ApprovalState.DENIED}),
    ApprovalState.APPROVED: frozenset({ApprovalState.DENIED}),
    ApprovalState.DENIED: frozenset({ApprovalState.APPROVED}),
}


def _parse_dt(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        # Epoch milliseconds from older documents
        dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    else:
        dt = datetime.fromisoformat(str(value))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class LastItem:
    """The most recently confirmed watch for a source."""

    id: str
    title: str
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "timestamp": _iso(self.timestamp)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LastItem":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            timestamp=_parse_dt(data["timestamp"]),
        )


@dataclass
class Relationship:
    """Persisted relationship score result."""

    score: int = 0
    trend: str = "stable"
    badge: str = "New"
    factors: dict[str, float] = field(default_factory=dict)
    last_score_update_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "trend": self.trend,
            "badge": self.badge,
            "factors": self.factors,
            "last_score_update_at": _iso(self.last_score_update_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Relationship":
        return cls(
            score=int(data.get("score", 0)),
            trend=data.get("trend", "stable"),
            badge=data.get("badge", "New"),
            factors=dict(data.get("factors") or {}),
            last_score_update_at=_parse_dt(data.get("last_score_update_at")),
        )


@dataclass
class WatchPatterns:
    """When and how deeply the user watches a source.

    Attributes:
        watch_hours: Local hours (0-23) in which watches were confirmed.
        watch_days: Weekdays with 0 = Sunday.
        average_watch_percentage: Running mean of watch depth, 0-100.
            Zero means unknown.
        session_count: Number of confirmed watches folded into the mean.
    """

    watch_hours: set[int] = field(default_factory=set)
    watch_days: set[int] = field(default_factory=set)
    average_watch_percentage: float = 0.0
    session_count: int = 0

    def record(self, when: datetime, watch_fraction: float) -> None:
        """Fold one confirmed watch into the patterns."""
        self.watch_hours.add(when.hour)
        self.watch_days.add(when.isoweekday() % 7)
        pct = max(0.0, min(1.0, watch_fraction)) * 100
        total = self.average_watch_percentage * self.session_count + pct
        self.session_count += 1
        self.average_watch_percentage = total / self.session_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "watch_hours": sorted(self.watch_hours),
            "watch_days": sorted(self.watch_days),
            "average_watch_percentage": self.average_watch_percentage,
            "session_count": self.session_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WatchPatterns":
        return cls(
            watch_hours={int(h) for h in data.get("watch_hours", [])},
            watch_days={int(d) for d in data.get("watch_days", [])},
            average_watch_percentage=float(data.get("average_watch_percentage", 0.0)),
            session_count=int(data.get("session_count", 0)),
        )


@dataclass
class FeedSnapshot:
    """Last item seen on the source's public feed."""

    last_seen_item_id: str | None = None
    last_seen_item_title: str | None = None
    last_seen_item_published_at: datetime | None = None
    last_polled_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_seen_item_id": self.last_seen_item_id,
            "last_seen_item_title": self.last_seen_item_title,
            "last_seen_item_published_at": _iso(self.last_seen_item_published_at),
            "last_polled_at": _iso(self.last_polled_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedSnapshot":
        return cls(
            last_seen_item_id=data.get("last_seen_item_id"),
            last_seen_item_title=data.get("last_seen_item_title"),
            last_seen_item_published_at=_parse_dt(data.get("last_seen_item_published_at")),
            last_polled_at=_parse_dt(data.get("last_polled_at")),
        )


@dataclass
class Source:
    """A tracked channel.

    Attributes:
        id: Canonical channel id (``UC...``) or ``handle_<name>``.
        name: Display name.
        first_seen_at: When the first watch was confirmed. ``None`` only
            for legacy documents; the score engine falls back on it.
        approval_state: Lifecycle state, see ALLOWED_TRANSITIONS.
        watched_item_ids: Ordered, duplicate-free, capped list (oldest first).
        watched_item_data: Title and timestamp per id in watched_item_ids.
        count: Lifetime confirmed watches. Keeps growing after eviction.
        last_item: Most recent confirmed watch.
        relationship: Last persisted relationship score.
        patterns: Viewing patterns.
        feed: Feed snapshot written after each successful poll.
        approved_at: When the user last approved the source.
        denied_at: When the user last denied the source.
        resolved_id: Canonical id resolved from a handle.
        approval_prompted: The ready prompt has been sent.
    """

    id: str
    name: str
    first_seen_at: datetime | None
    approval_state: ApprovalState = ApprovalState.TRACKING
    watched_item_ids: list[str] = field(default_factory=list)
    watched_item_data: dict[str, dict[str, Any]] = field(default_factory=dict)
    count: int = 0
    last_item: LastItem | None = None
    relationship: Relationship = field(default_factory=Relationship)
    patterns: WatchPatterns = field(default_factory=WatchPatterns)
    feed: FeedSnapshot = field(default_factory=FeedSnapshot)
    approved_at: datetime | None = None
    denied_at: datetime | None = None
    resolved_id: str | None = None
    approval_prompted: bool = False

    @property
    def is_approved(self) -> bool:
        return self.approval_state == ApprovalState.APPROVED

    @property
    def feed_id(self) -> str:
        """Id to build the feed URL from."""
        return self.resolved_id or self.id

    @property
    def last_activity_at(self) -> datetime | None:
        """Latest of the last watch and first sighting."""
        if self.last_item is not None:
            return self.last_item.timestamp
        return self.first_seen_at

    def has_watched(self, item_id: str) -> bool:
        return item_id in self.watched_item_ids

    def add_watched(
        self, item_id: str, title: str, when: datetime, cap: int
    ) -> list[str]:
        """Append an item id, evicting the oldest beyond ``cap``.

        Returns:
            Evicted item ids, oldest first.
        """
        if item_id in self.watched_item_ids:
            return []
        self.watched_item_ids.append(item_id)
        self.watched_item_data[item_id] = {"title": title, "timestamp": when}
        return self.trim_watched(cap)

    def trim_watched(self, cap: int) -> list[str]:
        """Enforce the FIFO cap on watched items."""
        evicted: list[str] = []
        while len(self.watched_item_ids) > cap:
            oldest = self.watched_item_ids.pop(0)
            self.watched_item_data.pop(oldest, None)
            evicted.append(oldest)
        return evicted

    def transition_to(self, target: ApprovalState, now: datetime) -> None:
        """Move to ``target`` or raise InvalidApprovalTransition."""
        if target not in ALLOWED_TRANSITIONS[self.approval_state]:
            raise InvalidApprovalTransition(
                self.id, self.approval_state.value, target.value
            )
        self.approval_state = target
        if target == ApprovalState.APPROVED:
            self.approved_at = now
        elif target == ApprovalState.DENIED:
            self.denied_at = now

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "first_seen_at": _iso(self.first_seen_at),
            "approval_state": self.approval_state.value,
            "watched_item_ids": list(self.watched_item_ids),
            "watched_item_data": {
                item_id: {
                    "title": data.get("title", ""),
                    "timestamp": _iso(data.get("timestamp")),
                }
                for item_id, data in self.watched_item_data.items()
            },
            "count": self.count,
            "last_item": self.last_item.to_dict() if self.last_item else None,
            "relationship": self.relationship.to_dict(),
            "patterns": self.patterns.to_dict(),
            "feed": self.feed.to_dict(),
            "approved_at": _iso(self.approved_at),
            "denied_at": _iso(self.denied_at),
            "resolved_id": self.resolved_id,
            "approval_prompted": self.approval_prompted,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Source":
        """Create a Source from a stored document.

        Missing sub-objects fall back to their empty defaults so legacy
        documents still load.
        """
        item_data: dict[str, dict[str, Any]] = {}
        for item_id, raw in (data.get("watched_item_data") or {}).items():
            item_data[item_id] = {
                "title": raw.get("title", ""),
                "timestamp": _parse_dt(raw.get("timestamp")),
            }

        last_item = data.get("last_item")
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            first_seen_at=_parse_dt(data.get("first_seen_at")),
            approval_state=ApprovalState(data.get("approval_state", "tracking")),
            watched_item_ids=list(data.get("watched_item_ids", [])),
            watched_item_data=item_data,
            count=int(data.get("count", 0)),
            last_item=LastItem.from_dict(last_item) if last_item else None,
            relationship=Relationship.from_dict(data.get("relationship") or {}),
            patterns=WatchPatterns.from_dict(data.get("patterns") or {}),
            feed=FeedSnapshot.from_dict(data.get("feed") or {}),
            approved_at=_parse_dt(data.get("approved_at")),
            denied_at=_parse_dt(data.get("denied_at")),
            resolved_id=data.get("resolved_id"),
            approval_prompted=bool(data.get("approval_prompted", False)),
        )
