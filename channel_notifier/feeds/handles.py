"""Resolution of human-readable handles to canonical channel ids.

Sources first seen through a handle are stored as ``handle_<name>``.
The handle is resolved once from the public channel page, cached in
memory for the life of the process and persisted on the source as
``resolved_id``. Resolution failure skips the source for this cycle.
"""

import logging
import re

from channel_notifier.errors import TransientIOError
from channel_notifier.feeds.config import FeedConfig
from channel_notifier.feeds.schemas import HANDLE_PREFIX, is_channel_id, is_handle
from channel_notifier.feeds.transport import FeedTransport
from channel_notifier.sources.schemas import Source
from channel_notifier.sources.store import SourceStore

logger = logging.getLogger(__name__)

_CHANNEL_ID_PATTERNS = (
    re.compile(r'<meta itemprop="channelId" content="([^"]+)"'),
    re.compile(r'"browseId":"(UC[a-zA-Z0-9_-]+)"'),
    re.compile(
        r'<link rel="canonical" href="https://www\.youtube\.com/channel/(UC[a-zA-Z0-9_-]+)"'
    ),
)


def extract_channel_id(page: str) -> str | None:
    """First valid channel id found in a channel page."""
    for pattern in _CHANNEL_ID_PATTERNS:
        match = pattern.search(page)
        if match and is_channel_id(match.group(1)):
            return match.group(1)
    return None


class HandleResolver:
    """Maps source ids to canonical channel ids."""

    def __init__(
        self,
        transport: FeedTransport,
        store: SourceStore | None = None,
        config: FeedConfig | None = None,
    ) -> None:
        self._transport = transport
        self._store = store
        self._config = config or FeedConfig()
        self._cache: dict[str, str] = {}

    def cached(self, handle: str) -> str | None:
        return self._cache.get(handle)

    async def resolve(self, source: Source) -> str | None:
        """Canonical id for ``source``, or None if it cannot be resolved now."""
        if not is_handle(source.id):
            return source.id
        if source.resolved_id:
            return source.resolved_id

        handle = source.id[len(HANDLE_PREFIX):]
        channel_id = self._cache.get(handle)
        if channel_id is None:
            channel_id = await self._lookup(handle)
            if channel_id is None:
                return None
            self._cache[handle] = channel_id
            logger.info("Resolved @%s to %s", handle, channel_id)

        await self._persist(source.id, channel_id)
        return channel_id

    async def _lookup(self, handle: str) -> str | None:
        url = self._config.handle_url_template.format(handle=handle)
        try:
            response = await self._transport.fetch_page(url)
        except TransientIOError as e:
            logger.warning("Handle lookup for @%s failed: %s", handle, e)
            return None
        if not response.ok:
            logger.warning("Handle page for @%s returned HTTP %d", handle, response.status)
            return None

        channel_id = extract_channel_id(response.body)
        if channel_id is None:
            logger.warning("No channel id found on page for @%s", handle)
        return channel_id

    async def _persist(self, source_id: str, channel_id: str) -> None:
        if self._store is None:
            return

        def mutate(current: Source | None) -> Source | None:
            if current is None or current.resolved_id == channel_id:
                return None
            current.resolved_id = channel_id
            return current

        try:
            await self._store.upsert(source_id, mutate)
        except TransientIOError as e:
            # The in-memory cache still holds the resolution
            logger.warning("Failed to persist resolved id for %s: %s", source_id, e)
