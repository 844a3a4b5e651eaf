"""Feed poller: newest entry of a source's public feed.

``poll()`` never raises. Resolution failures, transport errors, bad
statuses, short bodies and unparsable feeds all come back as None,
meaning "no data this cycle" for that source only.
"""

import asyncio
import logging
from datetime import datetime, timezone

from channel_notifier.errors import DataAnomalyError, TransientIOError
from channel_notifier.feeds.config import FeedConfig
from channel_notifier.feeds.handles import HandleResolver
from channel_notifier.feeds.parser import extract_feed_entry
from channel_notifier.feeds.schemas import FeedEntry, is_channel_id
from channel_notifier.feeds.transport import FeedTransport
from channel_notifier.observability.metrics import get_metrics
from channel_notifier.sources.schemas import Source

logger = logging.getLogger(__name__)


class FeedPoller:
    """Fetches and parses source feeds.

    Usage:
        async with FeedTransport(config) as transport:
            poller = FeedPoller(transport, HandleResolver(transport, store), config)
            entry = await poller.poll(source)
    """

    def __init__(
        self,
        transport: FeedTransport,
        resolver: HandleResolver | None = None,
        config: FeedConfig | None = None,
    ) -> None:
        self._config = config or FeedConfig()
        self._transport = transport
        self._resolver = resolver or HandleResolver(transport, config=self._config)

    def feed_url(self, channel_id: str) -> str:
        return self._config.feed_url_template.format(channel_id=channel_id)

    async def poll(self, source: Source, now: datetime | None = None) -> FeedEntry | None:
        """Newest feed entry for ``source``, or None."""
        metrics = get_metrics()

        channel_id = await self._resolver.resolve(source)
        if channel_id is None:
            metrics.record_feed_poll("unresolved")
            return None
        if not is_channel_id(channel_id):
            logger.warning("Invalid channel id %r for source %s", channel_id, source.id)
            metrics.record_feed_poll("unresolved")
            return None

        url = self.feed_url(channel_id)
        try:
            response = await self._transport.fetch_feed(
                url, timeout=self._config.request_timeout_seconds
            )
        except TransientIOError as e:
            logger.warning("Feed fetch failed for %s: %s", source.id, e)
            metrics.record_feed_poll("transport_error")
            return None

        if not response.ok:
            if response.status == 404:
                logger.info("No public feed for %s (HTTP 404)", source.id)
            else:
                logger.warning("Feed for %s returned HTTP %d", source.id, response.status)
            metrics.record_feed_poll("bad_status")
            return None

        if len(response.body) < self._config.min_body_length:
            logger.warning("Empty or truncated feed for %s", source.id)
            metrics.record_feed_poll("empty")
            return None

        try:
            entry = extract_feed_entry(response.body, now or datetime.now(timezone.utc))
        except DataAnomalyError as e:
            logger.warning("No usable entry in feed for %s: %s", source.id, e)
            metrics.record_feed_poll("unparsable")
            return None

        metrics.record_feed_poll("entry")
        return entry

    async def poll_many(
        self, sources: list[Source], now: datetime | None = None
    ) -> dict[str, FeedEntry | None]:
        """Poll several sources with bounded concurrency.

        A slow or failing source never blocks the others.
        """
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def _one(source: Source) -> tuple[str, FeedEntry | None]:
            async with semaphore:
                try:
                    return source.id, await self.poll(source, now)
                except Exception as e:
                    logger.warning("Unexpected poll failure for %s: %s", source.id, e)
                    return source.id, None

        results = await asyncio.gather(*(_one(s) for s in sources))
        return dict(results)
