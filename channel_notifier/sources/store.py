"""Source aggregate store.

The store is the single writer of Source documents. Every change goes
through ``upsert(id, mutation)``: the mutation receives the latest stored
Source (or None) and returns the new one, and the read-merge-write runs
under a per-source asyncio.Lock so interleaved watch confirmations and
feed decisions never lose updates.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from redis.exceptions import RedisError

from channel_notifier.errors import TransientIOError
from channel_notifier.sources.schemas import Source

logger = logging.getLogger(__name__)

Mutation = Callable[[Source | None], Source | None]


class _SourceLock:
    """A lock plus the number of callers holding or waiting on it."""

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class SourceStore(ABC):
    """Key-value store of Source aggregates."""

    def __init__(self) -> None:
        self._locks: dict[str, _SourceLock] = {}

    @asynccontextmanager
    async def _locked(self, source_id: str) -> AsyncIterator[None]:
        """Serialise writers of one source; the entry is dropped when unused."""
        entry = self._locks.get(source_id)
        if entry is None:
            entry = self._locks[source_id] = _SourceLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[source_id]

    @abstractmethod
    async def get(self, source_id: str) -> Source | None:
        """Return the stored source, or None."""

    @abstractmethod
    async def list_all(self) -> list[Source]:
        """Return every stored source."""

    @abstractmethod
    async def _remove(self, source_id: str) -> bool:
        """Remove a source unconditionally. Returns True if it existed."""

    @abstractmethod
    async def _write(self, source: Source) -> None:
        """Persist a source unconditionally."""

    async def upsert(self, source_id: str, mutation: Mutation) -> Source | None:
        """Atomically read, mutate and write one source.

        If the mutation returns None, nothing is written and the stored
        document is left as it was. Exceptions raised by the mutation
        propagate and leave the store untouched.

        Returns:
            The written Source, or the unchanged stored one when the
            mutation declined to write.
        """
        async with self._locked(source_id):
            current = await self.get(source_id)
            updated = mutation(current)
            if updated is None:
                return current
            if updated.id != source_id:
                raise ValueError(
                    f"Mutation changed source id {source_id!r} to {updated.id!r}"
                )
            await self._write(updated)
            return updated

    async def delete(self, source_id: str) -> bool:
        """Remove a source. Returns True if it existed."""
        async with self._locked(source_id):
            return await self._remove(source_id)


class InMemorySourceStore(SourceStore):
    """Dict-backed store for tests and single-shot CLI runs.

    Documents are kept serialised so callers never share mutable state
    with the store.
    """

    def __init__(self, sources: list[Source] | None = None) -> None:
        super().__init__()
        self._docs: dict[str, dict] = {}
        for source in sources or []:
            self._docs[source.id] = source.to_dict()

    async def get(self, source_id: str) -> Source | None:
        doc = self._docs.get(source_id)
        return Source.from_dict(doc) if doc is not None else None

    async def list_all(self) -> list[Source]:
        return [Source.from_dict(doc) for doc in self._docs.values()]

    async def _remove(self, source_id: str) -> bool:
        return self._docs.pop(source_id, None) is not None

    async def _write(self, source: Source) -> None:
        self._docs[source.id] = source.to_dict()


class RedisSourceStore(SourceStore):
    """Redis-backed store: one JSON document per source plus an id index.

    Keys:
        ``{prefix}:source:{id}``  JSON document
        ``{prefix}:sources``      set of known ids

    Redis failures surface as TransientIOError.
    """

    def __init__(self, redis_client, key_prefix: str = "ycn") -> None:
        super().__init__()
        self._redis = redis_client
        self._prefix = key_prefix

    def _key(self, source_id: str) -> str:
        return f"{self._prefix}:source:{source_id}"

    @property
    def _index_key(self) -> str:
        return f"{self._prefix}:sources"

    async def get(self, source_id: str) -> Source | None:
        try:
            raw = await self._redis.get(self._key(source_id))
        except RedisError as e:
            raise TransientIOError(f"Failed to read source {source_id}: {e}") from e
        if raw is None:
            return None
        return Source.from_dict(json.loads(raw))

    async def list_all(self) -> list[Source]:
        try:
            ids = await self._redis.smembers(self._index_key)
            if not ids:
                return []
            ordered = sorted(ids)
            raws = await self._redis.mget([self._key(i) for i in ordered])
        except RedisError as e:
            raise TransientIOError(f"Failed to list sources: {e}") from e

        sources = []
        for source_id, raw in zip(ordered, raws):
            if raw is None:
                logger.warning("Source %s indexed but missing its document", source_id)
                continue
            sources.append(Source.from_dict(json.loads(raw)))
        return sources

    async def _remove(self, source_id: str) -> bool:
        try:
            removed = await self._redis.delete(self._key(source_id))
            await self._redis.srem(self._index_key, source_id)
        except RedisError as e:
            raise TransientIOError(f"Failed to delete source {source_id}: {e}") from e
        return bool(removed)

    async def _write(self, source: Source) -> None:
        try:
            await self._redis.set(self._key(source.id), json.dumps(source.to_dict()))
            await self._redis.sadd(self._index_key, source.id)
        except RedisError as e:
            raise TransientIOError(f"Failed to write source {source.id}: {e}") from e
