"""Sources service: approval actions, badge summary, retention and scoring.

Wraps a SourceStore so that every state change runs through the store's
atomic upsert, and puts the relationship score cache in front of the
score engine.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from channel_notifier.errors import SourceNotFoundError
from channel_notifier.observability.metrics import get_metrics
from channel_notifier.relationship.cache import ScoreCache
from channel_notifier.relationship.engine import RelationshipScoreEngine
from channel_notifier.relationship.schemas import ScoreResult
from channel_notifier.sources.config import SourcesConfig
from channel_notifier.sources.schemas import ApprovalState, Relationship, Source
from channel_notifier.sources.store import SourceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BadgeSummary:
    """Counts per approval state and the single badge to show.

    ``badge`` is ``ready`` when any source awaits approval, else
    ``approved``, else ``tracking``, else None.
    """

    ready: int
    approved: int
    tracking: int
    denied: int
    badge: str | None
    badge_count: int


@dataclass(frozen=True)
class CleanupReport:
    deleted: list[str]
    trimmed: list[str]


class SourcesService:
    """High-level operations over the source store.

    Usage:
        service = SourcesService(store)
        await service.approve("UCxxxxxxxxxxxxxxxxxxxxxx")
        summary = await service.badge_summary()
    """

    def __init__(
        self,
        store: SourceStore,
        config: SourcesConfig | None = None,
        engine: RelationshipScoreEngine | None = None,
        score_cache: ScoreCache | None = None,
    ) -> None:
        self._store = store
        self._config = config or SourcesConfig()
        self._engine = engine or RelationshipScoreEngine()
        self._cache = score_cache or ScoreCache(
            ttl_seconds=self._engine.config.cache_ttl_seconds
        )

    @property
    def store(self) -> SourceStore:
        return self._store

    @property
    def score_cache(self) -> ScoreCache:
        return self._cache

    # ── Approval ────────────────────────────────────────────────

    async def approve(self, source_id: str, now: datetime | None = None) -> Source:
        """Approve a source for new-upload notifications.

        Raises:
            SourceNotFoundError: Unknown source.
            InvalidApprovalTransition: Source is still tracking or already approved.
        """
        return await self._transition(source_id, ApprovalState.APPROVED, now)

    async def deny(self, source_id: str, now: datetime | None = None) -> Source:
        """Deny a source. Denied sources are never notified about.

        Raises:
            SourceNotFoundError: Unknown source.
            InvalidApprovalTransition: Source is still tracking or already denied.
        """
        return await self._transition(source_id, ApprovalState.DENIED, now)

    async def _transition(
        self, source_id: str, target: ApprovalState, now: datetime | None
    ) -> Source:
        now = now or datetime.now(timezone.utc)

        def mutate(current: Source | None) -> Source:
            if current is None:
                raise SourceNotFoundError(f"Unknown source {source_id!r}")
            current.transition_to(target, now)
            return current

        source = await self._store.upsert(source_id, mutate)
        logger.info("Source %s is now %s", source_id, target.value)
        return source

    # ── Summary ─────────────────────────────────────────────────

    async def badge_summary(self) -> BadgeSummary:
        sources = await self._store.list_all()
        counts = {state: 0 for state in ApprovalState}
        for source in sources:
            counts[source.approval_state] += 1

        get_metrics().set_source_counts({s.value: n for s, n in counts.items()})

        badge: str | None = None
        badge_count = 0
        for state in (ApprovalState.READY, ApprovalState.APPROVED, ApprovalState.TRACKING):
            if counts[state] > 0:
                badge = state.value
                badge_count = counts[state]
                break

        return BadgeSummary(
            ready=counts[ApprovalState.READY],
            approved=counts[ApprovalState.APPROVED],
            tracking=counts[ApprovalState.TRACKING],
            denied=counts[ApprovalState.DENIED],
            badge=badge,
            badge_count=badge_count,
        )

    # ── Retention ───────────────────────────────────────────────

    async def cleanup(self, now: datetime | None = None) -> CleanupReport:
        """Apply the retention policy.

        Deletes unapproved sources whose last activity is older than
        ``retention_days`` and trims watched lists that exceed the cap.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=self._config.retention_days)
        cap = self._config.max_watched_items

        deleted: list[str] = []
        trimmed: list[str] = []

        for source in await self._store.list_all():
            last_activity = source.last_activity_at
            if (
                not source.is_approved
                and last_activity is not None
                and last_activity < cutoff
            ):
                if await self._store.delete(source.id):
                    self._cache.invalidate(source.id)
                    deleted.append(source.id)
                continue

            if len(source.watched_item_ids) > cap:

                def trim(current: Source | None) -> Source | None:
                    if current is None or not current.trim_watched(cap):
                        return None
                    return current

                await self._store.upsert(source.id, trim)
                trimmed.append(source.id)

        if deleted or trimmed:
            logger.info(
                "Cleanup deleted %d sources, trimmed %d watch lists",
                len(deleted), len(trimmed),
            )
        return CleanupReport(deleted=deleted, trimmed=trimmed)

    # ── Relationship ────────────────────────────────────────────

    def score(self, source: Source, now: datetime | None = None) -> ScoreResult:
        """Score through the TTL cache."""
        now = now or datetime.now(timezone.utc)

        def compute() -> ScoreResult:
            result = self._engine.score(source, now)
            get_metrics().record_score("fallback" if result.fallback else "computed")
            return result

        return self._cache.get_or_compute(source.id, compute)

    async def refresh_relationship(
        self, source_id: str, now: datetime | None = None
    ) -> Source:
        """Compute the score (cached) and persist it on the source.

        Raises:
            SourceNotFoundError: Unknown source.
        """
        now = now or datetime.now(timezone.utc)

        def mutate(current: Source | None) -> Source:
            if current is None:
                raise SourceNotFoundError(f"Unknown source {source_id!r}")
            result = self.score(current, now)
            current.relationship = Relationship(
                score=result.score,
                trend=result.trend.value,
                badge=result.badge.value,
                factors=dict(result.factors),
                last_score_update_at=now,
            )
            return current

        return await self._store.upsert(source_id, mutate)

    async def refresh_all(self, now: datetime | None = None) -> int:
        """Refresh the persisted relationship of every source."""
        now = now or datetime.now(timezone.utc)
        refreshed = 0
        for source in await self._store.list_all():
            try:
                await self.refresh_relationship(source.id, now)
                refreshed += 1
            except SourceNotFoundError:
                # Deleted between listing and refresh
                continue
        return refreshed
