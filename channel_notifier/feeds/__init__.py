"""Feeds: polling public channel feeds for their newest item."""

from channel_notifier.feeds.config import FeedConfig
from channel_notifier.feeds.handles import HandleResolver, extract_channel_id
from channel_notifier.feeds.parser import (
    decode_xml_entities,
    extract_feed_entry,
    parse_feed_entry,
)
from channel_notifier.feeds.poller import FeedPoller
from channel_notifier.feeds.schemas import FeedEntry, FeedResponse
from channel_notifier.feeds.transport import FeedTransport

__all__ = [
    "FeedConfig",
    "FeedEntry",
    "FeedPoller",
    "FeedResponse",
    "FeedTransport",
    "HandleResolver",
    "decode_xml_entities",
    "extract_channel_id",
    "extract_feed_entry",
    "parse_feed_entry",
]
