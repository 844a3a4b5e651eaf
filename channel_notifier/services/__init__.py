"""Long-running services."""

from channel_notifier.services.monitor_service import FeedMonitorService

__all__ = ["FeedMonitorService"]
