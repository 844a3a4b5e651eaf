"""Notification dispatcher.

Fans a notification out to every configured channel, each behind its own
circuit breaker. Dispatch is fire-and-forget from the caller's point of
view: ``notify()`` and ``request_approval()`` never raise.
"""

import logging

from channel_notifier.notifications.channels import (
    CircuitBreaker,
    LogChannel,
    NotificationChannel,
    WebhookChannel,
)
from channel_notifier.notifications.config import NotificationConfig
from channel_notifier.notifications.schemas import Notification
from channel_notifier.sources.schemas import Source

logger = logging.getLogger(__name__)


def build_channels(config: NotificationConfig) -> list[NotificationChannel]:
    """Log channel always, webhook when a URL is configured."""
    channels: list[NotificationChannel] = [LogChannel()]
    if config.webhook_url:
        channels.append(
            WebhookChannel(
                config.webhook_url,
                timeout=config.webhook_timeout_seconds,
                max_attempts=config.webhook_max_attempts,
                base_delay=config.webhook_base_delay,
            )
        )
    return channels


class NotificationDispatcher:
    """Delivers notifications across channels."""

    def __init__(
        self,
        channels: list[NotificationChannel] | None = None,
        config: NotificationConfig | None = None,
    ) -> None:
        self._config = config or NotificationConfig()
        if channels is None:
            channels = build_channels(self._config)

        self._channels: list[CircuitBreaker] = []
        for ch in channels:
            if isinstance(ch, CircuitBreaker):
                self._channels.append(ch)
            else:
                self._channels.append(
                    CircuitBreaker(
                        channel=ch,
                        failure_threshold=self._config.circuit_breaker_threshold,
                        recovery_timeout=self._config.circuit_breaker_recovery_seconds,
                    )
                )

    @property
    def channels(self) -> list[CircuitBreaker]:
        return self._channels

    async def notify(self, notification: Notification) -> list[tuple[str, bool]]:
        """Send to every channel. Returns (channel_name, success) pairs."""
        results: list[tuple[str, bool]] = []
        for channel in self._channels:
            try:
                ok = await channel.send(notification)
            except Exception as e:
                logger.warning("Channel %s failed: %s", channel.name, e)
                ok = False
            results.append((channel.name, ok))

        failures = [name for name, ok in results if not ok]
        if failures and len(failures) == len(results):
            logger.warning(
                "Notification %s for %s failed on all channels: %s",
                notification.notification_id, notification.source_id, failures,
            )
        elif failures:
            logger.warning(
                "Notification %s partially delivered, failed: %s",
                notification.notification_id, failures,
            )
        return results

    async def request_approval(self, source: Source) -> list[tuple[str, bool]]:
        """Ask the user to approve notifications for a ready source."""
        notification = Notification(
            kind="approval_request",
            source_id=source.id,
            source_name=source.name,
            title=f"You've watched {source.count} videos from {source.name}. Get notified of new uploads?",
        )
        return await self.notify(notification)
