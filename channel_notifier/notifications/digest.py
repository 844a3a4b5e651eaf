"""Digest queue for new-item entries.

Entries are tagged with the source's relationship score and a priority
so the digest can lead with favourite channels. Backed by a Redis list
when a client is given, an in-memory list otherwise. Enqueue failures
degrade to a warning.
"""

import json
import logging
from typing import Any

from channel_notifier.notifications.config import NotificationConfig
from channel_notifier.notifications.schemas import DigestEntry
from channel_notifier.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


class DigestQueue:
    """Queue of DigestEntry records, newest first."""

    def __init__(
        self,
        redis_client: Any | None = None,
        config: NotificationConfig | None = None,
        key_prefix: str = "ycn",
    ) -> None:
        self._config = config or NotificationConfig()
        self._redis = redis_client
        self._key = f"{key_prefix}:{self._config.digest_key}"
        self._memory: list[DigestEntry] = []

    def priority_for(self, score: int) -> str:
        return "high" if score >= self._config.high_priority_score else "normal"

    async def enqueue(self, entry: DigestEntry) -> bool:
        """Add an entry. Returns False if it could not be stored."""
        if self._redis is None:
            self._memory.insert(0, entry)
            del self._memory[self._config.digest_max_entries:]
        else:
            try:
                await self._redis.lpush(self._key, json.dumps(entry.to_dict()))
                await self._redis.ltrim(self._key, 0, self._config.digest_max_entries - 1)
            except Exception as e:
                logger.warning(
                    "Failed to queue digest entry for %s/%s: %s",
                    entry.source_id, entry.item_id, e,
                )
                return False

        get_metrics().record_digest(entry.priority)
        logger.debug(
            "Queued digest entry %s (%s priority)", entry.item_id, entry.priority
        )
        return True

    async def entries(self, limit: int | None = None) -> list[DigestEntry]:
        """Queued entries, newest first."""
        if self._redis is None:
            return list(self._memory[:limit] if limit else self._memory)
        end = (limit - 1) if limit else -1
        raws = await self._redis.lrange(self._key, 0, end)
        return [DigestEntry.from_dict(json.loads(raw)) for raw in raws]

    async def clear(self) -> None:
        if self._redis is None:
            self._memory.clear()
        else:
            await self._redis.delete(self._key)
