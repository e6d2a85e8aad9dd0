"""
Run modes built on PaginationDriver.

- run_incremental: every enabled subject from the store, one after another
- run_history: one handle, walked with the age filter disabled
- UserRefresher: refreshes stored user profiles from the lookup endpoint
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import structlog

from tweetharvest.collectors.twitter.client import TimelineClient
from tweetharvest.collectors.twitter.collector import TwitterCollector
from tweetharvest.collectors.twitter.models import RawUser
from tweetharvest.core.exceptions import CollectorError, FetchError, PersistenceError
from tweetharvest.ingestion.driver import DriverResult, PaginationDriver
from tweetharvest.ingestion.stats import RunStats
from tweetharvest.storage.base import Subject, TweetStore

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

PROFILE_URL_TEMPLATE = "https://x.com/{screen_name}"


# =============================================================================
# Incremental mode
# =============================================================================


async def run_incremental(
    store: TweetStore,
    driver: PaginationDriver,
    user_limit: int = 100,
    subject_delay: float = 2.0,
    sleep: Sleep = asyncio.sleep,
) -> RunStats:
    """Ingest every enabled subject, merging per-subject counters.

    A FetchError aborts only the subject it came from.

    Raises:
        PersistenceError: If the subject list cannot be read.
    """
    total = RunStats()
    subjects = await store.list_subjects(user_limit)
    logger.info("incremental_run_started", subjects=len(subjects))

    for index, subject in enumerate(subjects):
        if index:
            await sleep(subject_delay)

        log = logger.bind(subject=subject.screen_name, user_id=subject.rest_id)
        try:
            result = await driver.run(subject)
        except FetchError as e:
            total.errors += 1
            log.error("subject_aborted", error=e.message)
            continue

        total.merge(result.stats)
        log.info("subject_completed", **result.stats.to_dict())

    logger.info("incremental_run_completed", **total.to_dict())
    return total


# =============================================================================
# Full-history mode
# =============================================================================


async def resolve_subject(
    collector: TwitterCollector, handle: str, user_id: Optional[str] = None
) -> Subject:
    """Build a Subject for ``handle``, looking the id up when not given.

    Raises:
        FetchError: If the id cannot be resolved.
    """
    if user_id:
        return Subject(screen_name=handle, rest_id=user_id)

    try:
        rest_id = await collector.resolve_user_id(handle)
    except CollectorError as e:
        raise FetchError(handle, f"User lookup failed: {e.message}", e.details) from e
    if not rest_id:
        raise FetchError(handle, "Could not resolve user id")

    logger.info("user_id_resolved", subject=handle, user_id=rest_id)
    return Subject(screen_name=handle, rest_id=rest_id)


async def run_history(
    collector: TwitterCollector,
    driver: PaginationDriver,
    handle: str,
    user_id: Optional[str] = None,
    dump: bool = True,
) -> DriverResult:
    """Walk one handle's timeline and optionally dump what was collected.

    Raises:
        FetchError: If the id cannot be resolved or a page fetch fails.
    """
    subject = await resolve_subject(collector, handle, user_id)
    result = await driver.run(subject)

    if dump:
        collector.dump(
            [record.to_payload() for record in result.collected],
            f"all_tweet_{handle}",
        )

    logger.info("history_run_completed", subject=handle, **result.stats.to_dict())
    return result


# =============================================================================
# User refresh
# =============================================================================


@dataclass
class RefreshStats:
    updated: int = 0
    errors: int = 0

    def summary(self) -> str:
        return f"updated={self.updated} errors={self.errors}"


def build_user_update(user: dict[str, Any], now: Optional[datetime] = None) -> dict[str, Any]:
    """Row update for the users table from a lookup ``user`` block."""
    parsed = RawUser.model_validate(user)
    legacy = parsed.legacy
    screen_name = (legacy.screen_name if legacy else None) or ""
    return {
        "rest_id": parsed.rest_id or "",
        "name": (legacy.name if legacy else None) or "",
        "avatar": (legacy.profile_image_url_https if legacy else None) or "",
        "screen_name": screen_name,
        "description": (legacy.description if legacy else None) or "",
        "location": (legacy.location if legacy else None) or "",
        "followers_count": (legacy.followers_count if legacy else None) or 0,
        "following_count": (legacy.friends_count if legacy else None) or 0,
        "tweets_count": (legacy.statuses_count if legacy else None) or 0,
        "profile_url": PROFILE_URL_TEMPLATE.format(screen_name=screen_name),
        "raw_data": user,
        "updated_at": (now or datetime.now(timezone.utc)).isoformat(),
    }


class UserRefresher:
    """Refreshes profile fields of every stored user that has a name.

    Example:
        refresher = UserRefresher(store, client, delay=1.0)
        stats = await refresher.run()
    """

    def __init__(
        self,
        store: TweetStore,
        client: TimelineClient,
        delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.store = store
        self.client = client
        self.delay = delay
        self.sleep = sleep

    async def refresh_one(self, user: Subject, stats: RefreshStats) -> None:
        lookup_name = user.screen_name or user.name or ""
        log = logger.bind(user=user.name, screen_name=user.screen_name)

        try:
            profile = await self.client.get_user_by_screen_name(lookup_name)
            if not profile:
                stats.errors += 1
                log.warning("user_profile_empty")
                return
            await self.store.update_user(user.row_id, build_user_update(profile))
        except (CollectorError, PersistenceError) as e:
            stats.errors += 1
            log.error("user_refresh_failed", error=e.message)
            return

        stats.updated += 1
        log.info("user_refreshed")

    async def run(self) -> RefreshStats:
        """Refresh every user, waiting ``delay`` seconds after each.

        Raises:
            PersistenceError: If the user list cannot be read.
        """
        stats = RefreshStats()
        users = await self.store.list_users_to_refresh()
        logger.info("user_refresh_started", users=len(users))

        for user in users:
            await self.refresh_one(user, stats)
            await self.sleep(self.delay)

        logger.info("user_refresh_completed", updated=stats.updated, errors=stats.errors)
        return stats
