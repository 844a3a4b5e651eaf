"""Fixtures for feed tests."""

import pytest

from channel_notifier.feeds.config import FeedConfig

CHANNEL_ID = "UC" + "a" * 22

SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns:yt="http://www.youtube.com/xml/schemas/2015" xmlns:media="http://search.yahoo.com/mrss/" xmlns="http://www.w3.org/2005/Atom">
 <title>Test Channel</title>
 <entry>
  <id>yt:video:dQw4w9WgXcQ</id>
  <yt:videoId>dQw4w9WgXcQ</yt:videoId>
  <yt:channelId>UCaaaaaaaaaaaaaaaaaaaaaa</yt:channelId>
  <title>Newest &amp; Best</title>
  <link rel="alternate" href="https://www.youtube.com/watch?v=dQw4w9WgXcQ"/>
  <published>2026-03-04T18:10:00+00:00</published>
  <updated>2026-03-04T18:20:00+00:00</updated>
 </entry>
 <entry>
  <id>yt:video:9bZkp7q19f0</id>
  <yt:videoId>9bZkp7q19f0</yt:videoId>
  <title>Older</title>
  <published>2026-02-01T10:00:00+00:00</published>
 </entry>
</feed>
"""


@pytest.fixture
def sample_feed() -> str:
    return SAMPLE_FEED


@pytest.fixture
def feed_config() -> FeedConfig:
    """Feed config with instant retries."""
    return FeedConfig(retry_base_delay=0.0, retry_max_delay=0.0)


@pytest.fixture
def feed_url(feed_config) -> str:
    return feed_config.feed_url_template.format(channel_id=CHANNEL_ID)
