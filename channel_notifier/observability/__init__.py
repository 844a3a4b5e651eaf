"""Observability: structured logging and Prometheus metrics."""

from channel_notifier.observability.logging import (
    bind_context,
    log_context,
    setup_logging,
    unbind_context,
)
from channel_notifier.observability.metrics import MetricsCollector, get_metrics

__all__ = [
    "MetricsCollector",
    "bind_context",
    "get_metrics",
    "log_context",
    "setup_logging",
    "unbind_context",
]
