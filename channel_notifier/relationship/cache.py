"""TTL cache for relationship scores, keyed by source id."""

import time
from typing import Callable

from channel_notifier.relationship.schemas import ScoreResult


class ScoreCache:
    """In-process score cache.

    Entries expire ``ttl_seconds`` after they were stored, measured on a
    monotonic clock. Recording a watch invalidates the source's entry.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, ScoreResult]] = {}

    def get(self, source_id: str) -> ScoreResult | None:
        entry = self._entries.get(source_id)
        if entry is None:
            return None
        stored_at, result = entry
        if self._clock() - stored_at >= self._ttl:
            del self._entries[source_id]
            return None
        return result

    def put(self, source_id: str, result: ScoreResult) -> None:
        self._entries[source_id] = (self._clock(), result)

    def get_or_compute(
        self, source_id: str, compute: Callable[[], ScoreResult]
    ) -> ScoreResult:
        """Return the cached result, computing and storing it on a miss."""
        cached = self.get(source_id)
        if cached is not None:
            return cached
        result = compute()
        self.put(source_id, result)
        return result

    def invalidate(self, source_id: str) -> None:
        self._entries.pop(source_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
