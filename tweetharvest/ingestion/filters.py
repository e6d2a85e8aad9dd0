"""
Filter pipeline applied to raw timeline items before normalization.

Stages run in a fixed order and an item leaves at the first stage that
rejects it:

1. promoted  - item carries promotion metadata
2. stale     - older than ``max_age_days`` whole days (incremental mode only)
3. repost    - text starts with ``RT @`` or the upstream retweet flag is set
4. duplicate - id already present in the store

Duplicate checks are awaited one at a time, in arrival order. Survivors keep
their relative order.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from tweetharvest.collectors.twitter.normalizer import (
    extract_created_at,
    is_promoted,
    is_retweet,
    tweet_id_of,
)
from tweetharvest.core.exceptions import PersistenceError
from tweetharvest.ingestion.stats import RunStats
from tweetharvest.storage.base import TweetStore

logger = structlog.get_logger(__name__)


class RejectionReason(str, Enum):
    PROMOTED = "promoted"
    STALE = "stale"
    REPOST = "repost"
    DUPLICATE = "duplicate"


@dataclass
class Rejection:
    tweet_id: Optional[str]
    reason: RejectionReason


@dataclass
class FilterResult:
    """Items that passed every stage, plus one Rejection per dropped item."""

    survivors: list[dict[str, Any]] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FilterPipeline:
    """Ordered promoted/stale/repost/duplicate filter.

    Args:
        store: Store used for the duplicate check.
        age_filter_enabled: Apply the stale stage. Disabled in full-history mode.
        max_age_days: Items more than this many whole days old are stale.
        now: Clock, injectable for tests.
    """

    def __init__(
        self,
        store: TweetStore,
        age_filter_enabled: bool = True,
        max_age_days: int = 30,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.age_filter_enabled = age_filter_enabled
        self.max_age_days = max_age_days
        self.now = now

    def is_stale(self, raw: dict[str, Any]) -> bool:
        created_at = extract_created_at(raw)
        if created_at is None:
            return False
        return (self.now() - created_at).days > self.max_age_days

    def _static_reason(self, raw: dict[str, Any]) -> Optional[RejectionReason]:
        if is_promoted(raw):
            return RejectionReason.PROMOTED
        if self.age_filter_enabled and self.is_stale(raw):
            return RejectionReason.STALE
        if is_retweet(raw):
            return RejectionReason.REPOST
        return None

    async def _is_duplicate(self, tweet_id: Optional[str], stats: RunStats) -> bool:
        if not tweet_id:
            return False
        try:
            return await self.store.tweet_exists(tweet_id)
        except PersistenceError as e:
            stats.errors += 1
            logger.error("duplicate_check_failed", tweet_id=tweet_id, error=e.message)
            return False

    async def apply(self, items: list[dict[str, Any]], stats: RunStats) -> FilterResult:
        """Run every stage over ``items`` and count rejections in ``stats``."""
        result = FilterResult()

        for raw in items:
            tweet_id = tweet_id_of(raw)
            reason = self._static_reason(raw)
            if reason is None and await self._is_duplicate(tweet_id, stats):
                reason = RejectionReason.DUPLICATE

            if reason is None:
                result.survivors.append(raw)
                continue

            result.rejections.append(Rejection(tweet_id, reason))
            stats.record_rejection(reason.value)
            logger.info("tweet_filtered", tweet_id=tweet_id, reason=reason.value)

        logger.debug(
            "filter_pipeline_completed",
            received=len(items),
            survivors=len(result.survivors),
            rejected=len(result.rejections),
        )
        return result
