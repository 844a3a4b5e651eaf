"""Regex-based extraction of the newest feed entry.

Feeds are parsed with ordered fallback patterns rather than an XML
parser: the first pattern that matches wins. Only the first ``<entry>``
is read; feeds list newest first.
"""

import html
import logging
import re
from datetime import datetime, timezone

from channel_notifier.errors import DataAnomalyError
from channel_notifier.feeds.schemas import FeedEntry, is_item_id

logger = logging.getLogger(__name__)

_ENTRY_RE = re.compile(r"<entry>([\s\S]*?)</entry>")

_ITEM_ID_PATTERNS = (
    re.compile(r"<yt:videoId>([^<]+)</yt:videoId>"),
    re.compile(r"<id>yt:video:([^<]+)</id>"),
    re.compile(r"<id>[^:]+:([a-zA-Z0-9_-]{11})</id>"),
    re.compile(r"watch\?v=([a-zA-Z0-9_-]{11})"),
)

_TITLE_PATTERNS = (
    re.compile(r"<title>(?:<!\[CDATA\[)?(.*?)(?:\]\]>)?</title>", re.DOTALL),
    re.compile(r"<media:title[^>]*>(?:<!\[CDATA\[)?(.*?)(?:\]\]>)?</media:title>", re.DOTALL),
)

_DATE_PATTERNS = (
    re.compile(r"<published>([^<]+)</published>"),
    re.compile(r"<updated>([^<]+)</updated>"),
    re.compile(r"<yt:published>([^<]+)</yt:published>"),
)

DEFAULT_TITLE = "Unknown Title"


def decode_xml_entities(text: str) -> str:
    """Decode named, decimal and hex character references."""
    return html.unescape(text)


def _first_match(patterns: tuple[re.Pattern, ...], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match and match.group(1):
            return match.group(1)
    return None


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 feed timestamp into an aware UTC datetime."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def extract_feed_entry(raw_text: str, now: datetime | None = None) -> FeedEntry:
    """Extract the newest entry from a feed body.

    Missing titles and dates get defaults; only a missing entry or item
    id makes the feed unusable.

    Args:
        raw_text: Feed XML as text.
        now: Fallback publish time for missing or malformed dates.

    Raises:
        DataAnomalyError: No entry, or no valid item id in it.
    """
    now = now or datetime.now(timezone.utc)

    entry_match = _ENTRY_RE.search(raw_text or "")
    if entry_match is None:
        raise DataAnomalyError("Feed has no entries")
    entry = entry_match.group(1)

    item_id = _first_match(_ITEM_ID_PATTERNS, entry)
    if item_id is None:
        raise DataAnomalyError(f"No item id in feed entry: {entry[:200]!r}")
    item_id = item_id.strip()
    if not is_item_id(item_id):
        raise DataAnomalyError(f"Invalid item id format in feed: {item_id!r}")

    raw_title = _first_match(_TITLE_PATTERNS, entry)
    title = decode_xml_entities(raw_title.strip()) if raw_title else DEFAULT_TITLE

    published_at = now
    raw_date = _first_match(_DATE_PATTERNS, entry)
    if raw_date is not None:
        parsed = parse_timestamp(raw_date)
        if parsed is None:
            logger.warning("Malformed feed date %r, using current time", raw_date)
        else:
            published_at = parsed

    return FeedEntry(item_id=item_id, title=title, published_at=published_at)


def parse_feed_entry(raw_text: str, now: datetime | None = None) -> FeedEntry | None:
    """Like ``extract_feed_entry`` but returns None for an unusable feed."""
    try:
        return extract_feed_entry(raw_text, now)
    except DataAnomalyError as e:
        logger.debug("Unusable feed: %s", e)
        return None
