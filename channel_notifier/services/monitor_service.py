"""
Feed monitor service - polls approved sources and dispatches notifications.

Runs two scheduled tasks:
- poll cycle every ``poll_interval_seconds`` over approved sources
- retention cleanup every ``cleanup_interval_hours``

Features:
- Bounded fetch concurrency with per-source isolation
- Overlapping cycles are skipped, not queued
- Graceful shutdown through task handle cancellation
- Metrics collection
"""

import asyncio
import time
import uuid
from datetime import datetime, timezone

import structlog

from channel_notifier.config.settings import get_settings
from channel_notifier.errors import TransientIOError
from channel_notifier.feeds.poller import FeedPoller
from channel_notifier.notifications.pipeline import (
    NotificationDecisionPipeline,
    PipelineResult,
)
from channel_notifier.observability.logging import log_context
from channel_notifier.observability.metrics import get_metrics
from channel_notifier.scheduling.scheduler import AsyncioScheduler, Scheduler, TaskHandle
from channel_notifier.sources.service import CleanupReport, SourcesService

logger = structlog.get_logger(__name__)


class FeedMonitorService:
    """
    Periodic feed monitoring for approved sources.

    Usage:
        service = FeedMonitorService(sources, poller, pipeline)
        await service.run_forever()  # Runs until stop()
    """

    def __init__(
        self,
        sources: SourcesService,
        poller: FeedPoller,
        pipeline: NotificationDecisionPipeline,
        scheduler: Scheduler | None = None,
        poll_interval_seconds: float | None = None,
        cleanup_interval_seconds: float | None = None,
    ) -> None:
        settings = get_settings()

        self._sources = sources
        self._poller = poller
        self._pipeline = pipeline
        self._scheduler = scheduler or AsyncioScheduler()
        self._poll_interval = poll_interval_seconds or settings.poll_interval_seconds
        self._cleanup_interval = (
            cleanup_interval_seconds or settings.cleanup_interval_hours * 3600
        )
        self._metrics = get_metrics()
        self._handles: list[TaskHandle] = []
        self._cycle_lock = asyncio.Lock()
        self._stopped: asyncio.Event | None = None

        logger.info(
            "Feed monitor initialized",
            poll_interval=self._poll_interval,
            cleanup_interval=self._cleanup_interval,
        )

    @property
    def running(self) -> bool:
        return any(not h.cancelled for h in self._handles)

    async def run_cycle(self, now: datetime | None = None) -> list[PipelineResult]:
        """Poll every approved source once and process the results."""
        if self._cycle_lock.locked():
            logger.warning("Previous poll cycle still running, skipping")
            return []

        async with self._cycle_lock:
            with log_context(cycle_id=uuid.uuid4().hex[:12]):
                return await self._poll_approved(now)

    async def _poll_approved(self, now: datetime | None) -> list[PipelineResult]:
        start_time = time.monotonic()
        now = now or datetime.now(timezone.utc)

        try:
            sources = await self._sources.store.list_all()
        except TransientIOError as e:
            logger.warning("Could not list sources, skipping cycle", error=str(e))
            return []

        approved = [s for s in sources if s.is_approved]
        if not approved:
            logger.debug("No approved sources to poll")
            return []

        entries = await self._poller.poll_many(approved, now)

        results: list[PipelineResult] = []
        for source_id, entry in entries.items():
            results.append(await self._pipeline.process(source_id, entry, now))

        elapsed = time.monotonic() - start_time
        self._metrics.poll_cycle_latency.observe(elapsed)
        logger.info(
            "Poll cycle completed",
            sources=len(approved),
            entries=sum(1 for e in entries.values() if e is not None),
            notified=sum(1 for r in results if r.notified),
            elapsed_seconds=round(elapsed, 2),
        )
        return results

    async def run_cleanup(self, now: datetime | None = None) -> CleanupReport | None:
        """Apply retention and refresh persisted relationship scores."""
        now = now or datetime.now(timezone.utc)
        try:
            report = await self._sources.cleanup(now)
            await self._sources.refresh_all(now)
            await self._sources.badge_summary()
        except TransientIOError as e:
            logger.warning("Cleanup failed, retrying next interval", error=str(e))
            return None
        logger.info(
            "Retention cleanup completed",
            deleted=len(report.deleted),
            trimmed=len(report.trimmed),
        )
        return report

    def start(self) -> None:
        """Schedule the poll and cleanup tasks."""
        if self.running:
            return
        self._handles = [
            self._scheduler.schedule(self.run_cycle, self._poll_interval, name="poll_cycle"),
            self._scheduler.schedule(self.run_cleanup, self._cleanup_interval, name="cleanup"),
        ]
        logger.info("Feed monitor started")

    async def stop(self) -> None:
        """Cancel scheduled tasks and wait for any in-flight run."""
        logger.info("Stopping feed monitor")
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        if isinstance(self._scheduler, AsyncioScheduler):
            await self._scheduler.drain()
        if self._stopped is not None:
            self._stopped.set()

    async def run_forever(self) -> None:
        """Run an immediate cycle, then keep polling until stop()."""
        self._stopped = asyncio.Event()
        await self.run_cleanup()
        await self.run_cycle()
        self.start()
        try:
            await self._stopped.wait()
        except asyncio.CancelledError:
            logger.info("Feed monitor cancelled")
            await self.stop()
            raise
