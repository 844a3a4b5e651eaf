"""
Command-line interface for channel-notifier.

Usage:
    channel-notifier monitor            # Poll approved sources until stopped
    channel-notifier poll-once          # Run a single poll cycle
    channel-notifier status             # Approval badge and tracked sources
    channel-notifier score SOURCE_ID    # Compute and store a relationship score
    channel-notifier approve SOURCE_ID  # Enable notifications for a source
    channel-notifier deny SOURCE_ID     # Disable notifications for a source
    channel-notifier similar SOURCE_ID  # Sources resembling SOURCE_ID
    channel-notifier predict            # Sources likely to be watched next
"""

import asyncio
import os
import signal
import sys
from datetime import datetime, timezone
from typing import Any

import click

from channel_notifier.config.settings import get_settings
from channel_notifier.errors import ChannelNotifierError
from channel_notifier.observability.logging import setup_logging
from channel_notifier.observability.metrics import get_metrics
from channel_notifier.sources.service import SourcesService
from channel_notifier.sources.store import SourceStore


def _build_store() -> tuple[SourceStore, Any]:
    """Redis-backed store and the client to close afterwards."""
    import redis.asyncio as redis

    from channel_notifier.sources.store import RedisSourceStore

    settings = get_settings()
    redis_client = redis.from_url(
        str(settings.redis_url),
        encoding="utf-8",
        decode_responses=True,
    )
    return RedisSourceStore(redis_client, key_prefix=settings.redis_key_prefix), redis_client


async def _close(redis_client: Any) -> None:
    if redis_client is not None:
        await redis_client.aclose()


def _build_monitor(store: SourceStore, redis_client: Any, transport: Any):
    from channel_notifier.feeds.config import FeedConfig
    from channel_notifier.feeds.handles import HandleResolver
    from channel_notifier.feeds.poller import FeedPoller
    from channel_notifier.notifications.config import NotificationConfig
    from channel_notifier.notifications.digest import DigestQueue
    from channel_notifier.notifications.dispatcher import NotificationDispatcher
    from channel_notifier.notifications.pipeline import NotificationDecisionPipeline
    from channel_notifier.services.monitor_service import FeedMonitorService

    settings = get_settings()
    feed_config = FeedConfig()
    notification_config = NotificationConfig()

    sources = SourcesService(store)
    poller = FeedPoller(transport, HandleResolver(transport, store, feed_config), feed_config)
    pipeline = NotificationDecisionPipeline(
        store,
        NotificationDispatcher(config=notification_config),
        DigestQueue(redis_client, notification_config, key_prefix=settings.redis_key_prefix),
        scorer=sources.score,
        config=notification_config,
    )
    return FeedMonitorService(sources, poller, pipeline)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Channel Notifier - genuine-watch tracking and new-upload notifications."""
    if debug:
        os.environ["DEBUG"] = "true"
        get_settings.cache_clear()

    setup_logging()


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def monitor(metrics: bool) -> None:
    """Poll approved sources for new uploads until stopped."""
    from channel_notifier.feeds.transport import FeedTransport

    async def run():
        store, redis_client = _build_store()
        try:
            async with FeedTransport() as transport:
                service = _build_monitor(store, redis_client, transport)

                if metrics:
                    get_metrics().start_server()

                # Handle shutdown signals
                loop = asyncio.get_running_loop()
                for sig in (signal.SIGTERM, signal.SIGINT):
                    loop.add_signal_handler(sig, lambda: asyncio.create_task(service.stop()))

                await service.run_forever()
        finally:
            await _close(redis_client)

    asyncio.run(run())


@main.command("poll-once")
def poll_once() -> None:
    """Run a single poll cycle over approved sources."""
    from channel_notifier.feeds.transport import FeedTransport

    async def run():
        store, redis_client = _build_store()
        try:
            async with FeedTransport() as transport:
                service = _build_monitor(store, redis_client, transport)
                results = await service.run_cycle()
        finally:
            await _close(redis_client)

        if not results:
            click.echo("No approved sources polled.")
            return

        for result in results:
            if result.decision is None:
                click.echo(f"  {result.source_id}: no data this cycle")
                continue
            marker = click.style("notify", fg="green") if result.notified else "quiet"
            click.echo(f"  {result.source_id}: {result.decision.reason.value} ({marker})")
        click.echo(f"Polled {len(results)} sources, {sum(r.notified for r in results)} notified")

    asyncio.run(run())


@main.command()
def status() -> None:
    """Show the approval badge and every tracked source."""

    async def run():
        store, redis_client = _build_store()
        try:
            service = SourcesService(store)
            summary = await service.badge_summary()
            sources = await store.list_all()
        finally:
            await _close(redis_client)

        badge = f"{summary.badge} ({summary.badge_count})" if summary.badge else "none"
        click.echo(f"\nBadge: {badge}")
        click.echo(
            f"Ready: {summary.ready}  Approved: {summary.approved}  "
            f"Tracking: {summary.tracking}  Denied: {summary.denied}"
        )
        click.echo("-" * 60)
        for source in sorted(sources, key=lambda s: s.count, reverse=True):
            click.echo(
                f"  {source.name[:30]:<30} {source.approval_state.value:<9} "
                f"watches={source.count:<4} score={source.relationship.score}"
            )

    asyncio.run(run())


@main.command()
@click.argument("source_id")
def score(source_id: str) -> None:
    """Compute, store and show the relationship score of SOURCE_ID."""

    async def run() -> int:
        store, redis_client = _build_store()
        try:
            service = SourcesService(store)
            source = await service.refresh_relationship(source_id)
        except ChannelNotifierError as e:
            click.echo(click.style(f"Error: {e}", fg="red"), err=True)
            return 1
        finally:
            await _close(redis_client)

        rel = source.relationship
        click.echo(f"\n{source.name} ({source.id})")
        click.echo(f"  Score: {rel.score}  Badge: {rel.badge}  Trend: {rel.trend}")
        for name, value in rel.factors.items():
            click.echo(f"  {name:<10} {value:6.1f}")
        return 0

    sys.exit(asyncio.run(run()))


def _approval_command(source_id: str, approve: bool) -> int:
    async def run() -> int:
        store, redis_client = _build_store()
        try:
            service = SourcesService(store)
            if approve:
                source = await service.approve(source_id)
            else:
                source = await service.deny(source_id)
        except ChannelNotifierError as e:
            click.echo(click.style(f"Error: {e}", fg="red"), err=True)
            return 1
        finally:
            await _close(redis_client)
        click.echo(f"{source.name} is now {source.approval_state.value}")
        return 0

    return asyncio.run(run())


@main.command()
@click.argument("source_id")
def approve(source_id: str) -> None:
    """Enable new-upload notifications for SOURCE_ID."""
    sys.exit(_approval_command(source_id, approve=True))


@main.command()
@click.argument("source_id")
def deny(source_id: str) -> None:
    """Disable new-upload notifications for SOURCE_ID."""
    sys.exit(_approval_command(source_id, approve=False))


@main.command()
@click.argument("source_id")
@click.option("--limit", default=3, help="Maximum results")
def similar(source_id: str, limit: int) -> None:
    """List sources that resemble SOURCE_ID."""
    from channel_notifier.relationship.similarity import find_similar_sources

    async def run():
        store, redis_client = _build_store()
        try:
            sources = await store.list_all()
        finally:
            await _close(redis_client)

        matches = find_similar_sources(source_id, sources, max_results=limit)
        if not matches:
            click.echo("No similar sources found.")
            return
        for match in matches:
            click.echo(f"  {match.name} ({match.source_id}): {match.similarity}% similar")

    asyncio.run(run())


@main.command()
@click.option("--limit", default=5, help="Maximum results")
def predict(limit: int) -> None:
    """List approved sources likely to be watched next."""
    from channel_notifier.relationship.similarity import predict_next_watch

    async def run():
        store, redis_client = _build_store()
        try:
            sources = await store.list_all()
        finally:
            await _close(redis_client)

        now = datetime.now(timezone.utc).astimezone()
        predictions = predict_next_watch(sources, now, max_results=limit)
        if not predictions:
            click.echo("No predictions available.")
            return
        for p in predictions:
            hour = f"{p.suggested_hour:02d}:00" if p.suggested_hour is not None else "-"
            click.echo(f"  {p.name} ({p.source_id}): {p.probability:.0%} around {hour}")

    asyncio.run(run())


if __name__ == "__main__":
    main()
