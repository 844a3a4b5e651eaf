"""Retry with exponential backoff, applied only at transport boundaries."""

from channel_notifier.resilience.retry import backoff_delay, retry_async

__all__ = [
    "backoff_delay",
    "retry_async",
]
