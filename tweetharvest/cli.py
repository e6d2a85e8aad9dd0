"""Command-line entry point.

Usage:
    # Incremental run over every enabled subject in the users table
    tweetharvest fetch

    # Walk one account's history (id looked up when omitted)
    tweetharvest history elonmusk
    tweetharvest history elonmusk 44196397 --max-pages 5 --dry-run

    # Refresh stored user profiles
    tweetharvest refresh-users
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional

import structlog

from tweetharvest.collectors.twitter.client import TimelineClient
from tweetharvest.collectors.twitter.collector import TwitterCollector
from tweetharvest.config.settings import Settings, get_settings
from tweetharvest.core.exceptions import ConfigurationError, FetchError, PersistenceError
from tweetharvest.ingestion.driver import PaginationDriver
from tweetharvest.ingestion.filters import FilterPipeline
from tweetharvest.ingestion.persistence import PersistenceGateway
from tweetharvest.ingestion.runner import UserRefresher, run_history, run_incremental
from tweetharvest.ingestion.stats import RunStats
from tweetharvest.logging_config import configure_logging
from tweetharvest.services.ai_draw_sink import AiDrawSink
from tweetharvest.services.ai_service import AIService
from tweetharvest.services.content_classifier import ContentClassifier, RuleClassifier
from tweetharvest.storage.base import TweetStore
from tweetharvest.storage.memory import InMemoryTweetStore
from tweetharvest.storage.supabase_store import SupabaseTweetStore

logger = structlog.get_logger(__name__)


# =============================================================================
# Wiring
# =============================================================================


def build_store(settings: Settings, dry_run: bool = False) -> TweetStore:
    if dry_run:
        logger.info("dry_run_enabled")
        return InMemoryTweetStore()
    return SupabaseTweetStore.from_settings(settings)


def build_timeline_client(settings: Settings) -> TimelineClient:
    settings.require("auth_token")
    return TimelineClient(
        settings.timeline_api_url,
        auth_token=settings.auth_token.get_secret_value(),
        timeout=settings.timeline_timeout_seconds,
    )


def build_collector(settings: Settings, client: TimelineClient) -> TwitterCollector:
    return TwitterCollector(client, {"debug": settings.debug, "debug_dir": settings.debug_dir})


def print_summary(title: str, stats: RunStats) -> None:
    print(f"\n{title} completed")
    print(f"  Fetched:    {stats.fetched}")
    print(f"  Filtered:   {stats.filtered_total}")
    for reason, count in sorted(stats.filtered.items()):
        print(f"    {reason}: {count}")
    print(f"  Classified: {stats.classified}")
    print(f"  Persisted:  {stats.persisted}")
    print(f"  Skipped:    {stats.skipped}")
    print(f"  Errors:     {stats.errors}")


# =============================================================================
# Commands
# =============================================================================


async def cmd_fetch(settings: Settings, args: argparse.Namespace) -> int:
    """Incremental mode: recent posts of every enabled subject."""
    analyzer = AIService.from_settings(settings)
    store = build_store(settings, args.dry_run)
    stats = RunStats()

    sink = AiDrawSink(settings.ai_draw_sink_url)

    async with build_timeline_client(settings) as client, sink:
        driver = PaginationDriver(
            collector=build_collector(settings, client),
            filters=FilterPipeline(store, max_age_days=settings.max_tweet_age_days),
            classifier=ContentClassifier(analyzer, sink),
            gateway=PersistenceGateway(store),
            max_pages=settings.incremental_max_pages,
            page_delay=settings.page_delay_seconds,
        )
        try:
            stats = await run_incremental(
                store,
                driver,
                user_limit=settings.user_limit,
                subject_delay=settings.subject_delay_seconds,
            )
        except PersistenceError as e:
            stats.errors += 1
            logger.error("subject_listing_failed", error=e.message)
        finally:
            print_summary("Incremental fetch", stats)

    return 0


async def cmd_history(settings: Settings, args: argparse.Namespace) -> int:
    """Full-history mode for one handle: no age filter, local rule classifier."""
    store = build_store(settings, args.dry_run)
    stats = RunStats()
    status = 0

    async with build_timeline_client(settings) as client:
        collector = build_collector(settings, client)
        driver = PaginationDriver(
            collector=collector,
            filters=FilterPipeline(store, age_filter_enabled=False),
            classifier=RuleClassifier(),
            gateway=PersistenceGateway(store),
            max_pages=args.max_pages or settings.history_max_pages,
            page_delay=settings.page_delay_seconds,
        )
        try:
            result = await run_history(collector, driver, args.handle, args.user_id)
            stats = result.stats
        except FetchError as e:
            stats.errors += 1
            logger.error("history_run_failed", subject=args.handle, error=e.message)
            print(f"Error: {e.message}", file=sys.stderr)
            status = 1
        finally:
            print_summary(f"History fetch for @{args.handle}", stats)

    return status


async def cmd_refresh_users(settings: Settings, args: argparse.Namespace) -> int:
    """Refresh profile fields of stored users."""
    store = build_store(settings)

    async with build_timeline_client(settings) as client:
        refresher = UserRefresher(store, client, delay=settings.refresh_delay_seconds)
        try:
            stats = await refresher.run()
        except PersistenceError as e:
            logger.error("user_listing_failed", error=e.message)
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

    print("\nUser refresh completed")
    print(f"  Updated: {stats.updated}")
    print(f"  Errors:  {stats.errors}")
    return 0


COMMANDS = {
    "fetch": cmd_fetch,
    "history": cmd_history,
    "refresh-users": cmd_refresh_users,
}


# =============================================================================
# Entry point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tweetharvest",
        description="Ingest user timelines into Supabase",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    fetch = subparsers.add_parser("fetch", help="Incremental run over enabled subjects")
    fetch.add_argument(
        "--dry-run",
        action="store_true",
        help="Use an in-memory store instead of Supabase",
    )

    history = subparsers.add_parser("history", help="Walk one account's timeline history")
    history.add_argument("handle", help="Screen name, without @")
    history.add_argument("user_id", nargs="?", help="Numeric user id (looked up when omitted)")
    history.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Page bound (default: HISTORY_MAX_PAGES)",
    )
    history.add_argument(
        "--dry-run",
        action="store_true",
        help="Use an in-memory store instead of Supabase",
    )

    subparsers.add_parser("refresh-users", help="Refresh stored user profiles")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
        configure_logging(settings.log_level)
        return asyncio.run(COMMANDS[args.command](settings, args))
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
