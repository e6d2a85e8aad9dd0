"""Idempotent persistence of classified records."""

from enum import Enum

import structlog

from tweetharvest.collectors.normalization.schema import TweetRecord
from tweetharvest.core.exceptions import PersistenceError
from tweetharvest.ingestion.stats import RunStats
from tweetharvest.storage.base import TweetStore

logger = structlog.get_logger(__name__)


class PersistOutcome(str, Enum):
    INSERTED = "inserted"
    SKIPPED = "skipped"
    ERRORED = "errored"


class PersistenceGateway:
    """Insert-if-absent over a TweetStore.

    The existence check and the insert are separate round trips; a single
    writer per run is assumed. Never raises: store failures are counted as
    errors and the record is skipped.
    """

    def __init__(self, store: TweetStore):
        self.store = store

    async def persist(self, record: TweetRecord, stats: RunStats) -> PersistOutcome:
        if not record.author.rest_id:
            stats.errors += 1
            logger.warning("persist_missing_user_id", tweet_id=record.id)
            return PersistOutcome.ERRORED

        try:
            if await self.store.tweet_exists(record.id):
                stats.skipped += 1
                logger.debug("tweet_already_stored", tweet_id=record.id)
                return PersistOutcome.SKIPPED

            await self.store.insert_tweet(record.to_row())
        except PersistenceError as e:
            stats.errors += 1
            logger.error(
                "tweet_persist_failed",
                tweet_id=record.id,
                operation=e.operation,
                error=e.message,
            )
            return PersistOutcome.ERRORED

        stats.persisted += 1
        logger.info(
            "tweet_persisted",
            tweet_id=record.id,
            user_id=record.author.rest_id,
            content_type=record.content_type.value,
        )
        return PersistOutcome.INSERTED
