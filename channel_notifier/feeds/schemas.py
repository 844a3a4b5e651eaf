"""Feed data types."""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any

CHANNEL_ID_RE = re.compile(r"^UC[a-zA-Z0-9_-]{22}$")
ITEM_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{11}$")
HANDLE_PREFIX = "handle_"


def is_channel_id(value: str) -> bool:
    return bool(CHANNEL_ID_RE.match(value))


def is_item_id(value: str) -> bool:
    return bool(ITEM_ID_RE.match(value))


def is_handle(source_id: str) -> bool:
    return source_id.startswith(HANDLE_PREFIX)


@dataclass(frozen=True)
class FeedEntry:
    """Newest item parsed from a feed."""

    item_id: str
    title: str
    published_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "title": self.title,
            "published_at": self.published_at.isoformat(),
        }


@dataclass(frozen=True)
class FeedResponse:
    """Raw transport result."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300
