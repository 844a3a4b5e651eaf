"""
Prometheus metrics for monitoring watch tracking and feed notifications.

Defines and exposes metrics for:
- Watch session outcomes and confirmations
- Feed poll results and cycle latency
- Notification decisions and digest queueing
- Relationship score computations

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from channel_notifier.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the channel notifier.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_feed_poll("new_entry")
        metrics.poll_cycle_latency.observe(3.2)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.watch_sessions = Counter(
            "channel_notifier_watch_sessions_total",
            "Watch sessions by terminal outcome",
            ["outcome"],  # confirmed, abandoned, pause_only
        )

        self.watches_recorded = Counter(
            "channel_notifier_watches_recorded_total",
            "Confirmed watches applied to source aggregates",
            ["status"],  # recorded, duplicate, error
        )

        self.feed_polls = Counter(
            "channel_notifier_feed_polls_total",
            "Feed polls by result",
            ["result"],  # entry, unresolved, transport_error, bad_status, empty, unparsable
        )

        self.notification_decisions = Counter(
            "channel_notifier_notification_decisions_total",
            "Notification decisions by reason",
            ["reason"],
        )

        self.digest_entries = Counter(
            "channel_notifier_digest_entries_total",
            "Digest entries queued",
            ["priority"],
        )

        self.score_computations = Counter(
            "channel_notifier_score_computations_total",
            "Relationship score computations",
            ["mode"],  # computed, fallback, cached
        )

        self.poll_cycle_latency = Histogram(
            "channel_notifier_poll_cycle_latency_seconds",
            "Time to poll all approved sources once",
            buckets=LATENCY_BUCKETS,
        )

        self.tracked_sources = Gauge(
            "channel_notifier_tracked_sources",
            "Number of sources by approval state",
            ["state"],
        )

        self._server_started = False

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to listen on (defaults to settings.metrics_port)
        """
        if self._server_started:
            logger.warning("Metrics server already started")
            return

        port = port or get_settings().metrics_port
        start_http_server(port)
        self._server_started = True
        logger.info(f"Metrics server started on port {port}")

    def record_watch_session(self, outcome: str) -> None:
        """Record a watch session reaching a terminal state."""
        self.watch_sessions.labels(outcome=outcome).inc()

    def record_watch(self, status: str) -> None:
        """Record the outcome of applying a confirmed watch."""
        self.watches_recorded.labels(status=status).inc()

    def record_feed_poll(self, result: str) -> None:
        """Record a single feed poll result."""
        self.feed_polls.labels(result=result).inc()

    def record_decision(self, reason: str) -> None:
        """Record a notification decision."""
        self.notification_decisions.labels(reason=reason).inc()

    def record_digest(self, priority: str) -> None:
        """Record a digest entry being queued."""
        self.digest_entries.labels(priority=priority).inc()

    def record_score(self, mode: str) -> None:
        """Record a relationship score computation."""
        self.score_computations.labels(mode=mode).inc()

    def set_source_counts(self, counts: dict[str, int]) -> None:
        """
        Set per-approval-state source gauges.

        Args:
            counts: Mapping of approval state to number of sources
        """
        for state, value in counts.items():
            self.tracked_sources.labels(state=state).set(value)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
