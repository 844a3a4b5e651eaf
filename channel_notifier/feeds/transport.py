"""HTTP transport for feeds and channel pages.

The only layer that retries. Connection failures and 429/5xx responses
are retried with backoff; timeouts are not, so a stuck poll is abandoned
rather than extended. Every other failure surfaces as TransientIOError.
"""

import logging
from typing import Any

import httpx

from channel_notifier.errors import TransientIOError
from channel_notifier.feeds.config import FeedConfig
from channel_notifier.feeds.schemas import FeedResponse
from channel_notifier.resilience.retry import retry_async

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class RetryableStatusError(Exception):
    """A response status worth retrying."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


class FeedTransport:
    """
    Async HTTP GET client for public feeds.

    Example:
        async with FeedTransport() as transport:
            response = await transport.fetch_feed(url, timeout=10.0)
            if response.ok:
                entry = parse_feed_entry(response.body)
    """

    def __init__(
        self,
        config: FeedConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or FeedConfig()
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "FeedTransport":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._config.request_timeout_seconds,
                follow_redirects=True,
                headers={"User-Agent": self._config.user_agent},
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    @retry_async(
        max_attempts=lambda self: self._config.retry_max_attempts,
        base_delay=lambda self: self._config.retry_base_delay,
        max_delay=lambda self: self._config.retry_max_delay,
        retry_on=(httpx.ConnectError, httpx.ReadError, RetryableStatusError),
    )
    async def _get(self, url: str, timeout: float) -> httpx.Response:
        client = self._ensure_client()
        response = await client.get(url, timeout=timeout, headers={"Cache-Control": "no-cache"})
        if response.status_code in RETRYABLE_STATUS_CODES:
            raise RetryableStatusError(response)
        return response

    async def fetch(self, url: str, timeout: float | None = None) -> FeedResponse:
        """GET ``url`` and return its status and body.

        Non-success statuses are returned, not raised. A retryable status
        that persists after the last attempt is returned as-is.

        Raises:
            TransientIOError: Timeout or connection failure.
        """
        timeout = timeout or self._config.request_timeout_seconds
        try:
            response = await self._get(url, timeout)
        except RetryableStatusError as e:
            response = e.response
        except httpx.TimeoutException as e:
            raise TransientIOError(f"Timed out fetching {url}") from e
        except httpx.HTTPError as e:
            raise TransientIOError(f"Failed to fetch {url}: {e}") from e
        return FeedResponse(status=response.status_code, body=response.text)

    async def fetch_feed(self, url: str, timeout: float | None = None) -> FeedResponse:
        return await self.fetch(url, timeout)

    async def fetch_page(self, url: str, timeout: float | None = None) -> FeedResponse:
        return await self.fetch(url, timeout)
