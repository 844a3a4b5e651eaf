"""Notification channel implementations.

Provides an ABC for notification channels plus a log channel and a
webhook channel. A CircuitBreaker decorator wraps any channel so an
unhealthy endpoint is skipped instead of retried on every notification.
"""

import enum
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable

import httpx

from channel_notifier.notifications.schemas import Notification
from channel_notifier.resilience.retry import retry_async

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Abstract base for notification delivery channels."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'log', 'webhook')."""

    @abstractmethod
    async def send(self, notification: Notification) -> bool:
        """Deliver a notification.

        Returns:
            True if delivery succeeded, False otherwise.
        """


class LogChannel(NotificationChannel):
    """Writes notifications to the application log."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level
        self.sent: list[Notification] = []

    @property
    def name(self) -> str:
        return "log"

    async def send(self, notification: Notification) -> bool:
        if notification.kind == "approval_request":
            logger.log(
                self._level,
                "Approval requested: %s (%s) is ready for notifications",
                notification.source_name, notification.source_id,
            )
        else:
            logger.log(
                self._level,
                "New from %s: %s %s",
                notification.source_name, notification.title, notification.url,
            )
        self.sent.append(notification)
        return True


class _RetryableWebhookStatus(Exception):
    pass


class WebhookChannel(NotificationChannel):
    """Delivers notifications as JSON POST to an HTTP endpoint.

    Connection errors and 5xx/429 responses are retried with backoff;
    anything else fails the send immediately.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._base_delay = base_delay

    @property
    def name(self) -> str:
        return "webhook"

    @retry_async(
        max_attempts=lambda self: self._max_attempts,
        base_delay=lambda self: self._base_delay,
        retry_on=(httpx.ConnectError, httpx.ReadError, _RetryableWebhookStatus),
    )
    async def _post(self, payload: dict) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            resp = await client.post(self._url, json=payload, headers=self._headers)
        if resp.status_code == 429 or resp.status_code >= 500:
            raise _RetryableWebhookStatus(f"HTTP {resp.status_code}")
        return resp

    async def send(self, notification: Notification) -> bool:
        try:
            resp = await self._post(notification.to_dict())
        except httpx.TimeoutException:
            logger.warning(
                "Webhook %s timed out for notification %s",
                self._url, notification.notification_id,
            )
            return False
        except (httpx.HTTPError, _RetryableWebhookStatus) as e:
            logger.warning(
                "Webhook %s failed for notification %s: %s",
                self._url, notification.notification_id, e,
            )
            return False

        if resp.is_success:
            return True
        logger.warning(
            "Webhook %s returned %d for notification %s",
            self._url, resp.status_code, notification.notification_id,
        )
        return False


class CircuitState(enum.Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker(NotificationChannel):
    """Wraps a NotificationChannel with circuit breaker protection.

    - CLOSED: sends pass through; consecutive failures are counted.
    - OPEN: sends are rejected until ``recovery_timeout`` has passed.
    - HALF_OPEN: one probe; success closes, failure reopens.

    A channel that raises counts as a failed send.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._channel = channel
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0

    @property
    def name(self) -> str:
        return self._channel.name

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def channel(self) -> NotificationChannel:
        return self._channel

    async def send(self, notification: Notification) -> bool:
        if self._state == CircuitState.OPEN:
            if self._clock() - self._opened_at < self._recovery_timeout:
                logger.debug(
                    "Circuit %s open, dropping notification %s",
                    self.name, notification.notification_id,
                )
                return False
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit %s: probing recovery", self.name)

        try:
            success = await self._channel.send(notification)
        except Exception as e:
            logger.warning("Channel %s raised: %s", self.name, e)
            success = False

        if success:
            if self._state == CircuitState.HALF_OPEN:
                logger.info("Circuit %s closed after successful probe", self.name)
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            return True

        self._consecutive_failures += 1
        if (
            self._state == CircuitState.HALF_OPEN
            or self._consecutive_failures >= self._failure_threshold
        ):
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()
            logger.warning(
                "Circuit %s opened after %d consecutive failures",
                self.name, self._consecutive_failures,
            )
        return False
