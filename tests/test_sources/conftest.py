"""Shared fixtures for sources tests."""

from unittest.mock import AsyncMock

import pytest

from channel_notifier.sources.config import SourcesConfig
from channel_notifier.sources.service import SourcesService


@pytest.fixture
def config():
    """Default sources config."""
    return SourcesConfig()


@pytest.fixture
def service(store, config):
    """SourcesService over the in-memory store."""
    return SourcesService(store, config=config)


@pytest.fixture
def mock_redis():
    """Mock redis.asyncio client holding documents in a dict."""
    docs: dict[str, str] = {}
    index: set[str] = set()
    r = AsyncMock()

    async def _get(key):
        return docs.get(key)

    async def _set(key, value):
        docs[key] = value
        return True

    async def _delete(key):
        return 1 if docs.pop(key, None) is not None else 0

    async def _sadd(key, member):
        index.add(member)
        return 1

    async def _srem(key, member):
        index.discard(member)
        return 1

    async def _smembers(key):
        return set(index)

    async def _mget(keys):
        return [docs.get(k) for k in keys]

    r.get.side_effect = _get
    r.set.side_effect = _set
    r.delete.side_effect = _delete
    r.sadd.side_effect = _sadd
    r.srem.side_effect = _srem
    r.smembers.side_effect = _smembers
    r.mget.side_effect = _mget
    r.docs = docs
    return r
