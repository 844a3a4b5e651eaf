"""Schema definitions for notifications, decisions and digest entries."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

NotificationKind = Literal["new_item", "approval_request"]
DigestPriority = Literal["high", "normal"]


class DecisionReason(str, Enum):
    """Which row of the notification decision table applied."""

    NOT_APPROVED = "not_approved"
    FIRST_SIGHT_FRESH = "first_sight_fresh"
    FIRST_SIGHT_STALE = "first_sight_stale"
    NEW_ITEM = "new_item"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class NotificationDecision:
    """Result of ``decide()``.

    The feed snapshot is always updated after a successful parse, so the
    decision only says whether to notify and why.
    """

    notify: bool
    reason: DecisionReason


@dataclass
class Notification:
    """A user-visible notification request.

    Attributes:
        kind: new_item for uploads, approval_request for ready sources.
        source_id: Source the notification is about.
        source_name: Display name of the source.
        item_id: New item id (new_item only).
        title: Item title, or a prompt for approval requests.
        notification_id: UUID4 identifier.
        created_at: When the notification was requested.
    """

    kind: NotificationKind
    source_id: str
    source_name: str
    item_id: str | None = None
    title: str = ""
    notification_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def url(self) -> str | None:
        if self.item_id is None:
            return None
        return f"https://www.youtube.com/watch?v={self.item_id}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "notification_id": self.notification_id,
            "kind": self.kind,
            "source_id": self.source_id,
            "source_name": self.source_name,
            "item_id": self.item_id,
            "title": self.title,
            "url": self.url,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class DigestEntry:
    """A new item queued for the periodic digest."""

    source_id: str
    source_name: str
    item_id: str
    title: str
    published_at: datetime
    relationship_score: int = 50
    priority: DigestPriority = "normal"
    queued_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "source_name": self.source_name,
            "item_id": self.item_id,
            "title": self.title,
            "published_at": self.published_at.isoformat(),
            "relationship_score": self.relationship_score,
            "priority": self.priority,
            "queued_at": self.queued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DigestEntry":
        return cls(
            source_id=data["source_id"],
            source_name=data.get("source_name", ""),
            item_id=data["item_id"],
            title=data.get("title", ""),
            published_at=datetime.fromisoformat(data["published_at"]),
            relationship_score=int(data.get("relationship_score", 50)),
            priority=data.get("priority", "normal"),
            queued_at=datetime.fromisoformat(data["queued_at"])
            if data.get("queued_at")
            else datetime.now(timezone.utc),
        )
