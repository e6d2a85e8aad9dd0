"""
Pagination driver for one subject.

State machine:

    FETCHING -> FILTERING -> CLASSIFYING -> PERSISTING -> ADVANCE -> FETCHING
    FETCHING -> DONE      (empty page)
    ADVANCE  -> DONE      (no cursor, or page bound reached)

An empty page, a missing cursor or the page bound ends the walk. Every await
is sequential; there is no fan-out within a subject.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional

import structlog

from tweetharvest.collectors.base import BaseCollector
from tweetharvest.collectors.normalization.schema import TweetRecord
from tweetharvest.collectors.twitter.normalizer import normalize
from tweetharvest.ingestion.filters import FilterPipeline
from tweetharvest.ingestion.persistence import PersistenceGateway, PersistOutcome
from tweetharvest.ingestion.stats import RunStats
from tweetharvest.services.content_classifier import Classifier
from tweetharvest.storage.base import Subject

logger = structlog.get_logger(__name__)


class DriverState(str, Enum):
    FETCHING = "fetching"
    FILTERING = "filtering"
    CLASSIFYING = "classifying"
    PERSISTING = "persisting"
    ADVANCE = "advance"
    DONE = "done"


@dataclass
class DriverResult:
    """Outcome of one subject walk.

    ``records`` holds the newly persisted records; ``collected`` holds every
    record that was normalized and classified, persisted or not.
    """

    records: list[TweetRecord] = field(default_factory=list)
    collected: list[TweetRecord] = field(default_factory=list)
    stats: RunStats = field(default_factory=RunStats)


class PaginationDriver:
    """Walks a subject's timeline page by page through the pipeline.

    Args:
        collector: Page source. A FetchError from it propagates to the caller.
        filters: Filter pipeline applied to each page.
        classifier: ContentClassifier or RuleClassifier.
        gateway: Persistence gateway.
        max_pages: Page bound; None walks until the cursor runs out.
        page_delay: Seconds to sleep before fetching the next page.
        sleep: Sleep coroutine, injectable for tests.
    """

    def __init__(
        self,
        collector: BaseCollector,
        filters: FilterPipeline,
        classifier: Classifier,
        gateway: PersistenceGateway,
        max_pages: Optional[int] = 1,
        page_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.collector = collector
        self.filters = filters
        self.classifier = classifier
        self.gateway = gateway
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.sleep = sleep
        self.state = DriverState.DONE

    def _transition(self, state: DriverState, subject: Subject) -> None:
        self.state = state
        logger.debug("driver_state", subject=subject.screen_name, state=state.value)

    async def _process(
        self, raw: dict, subject: Subject, result: DriverResult
    ) -> None:
        stats = result.stats
        record = normalize(raw, subject_rest_id=subject.rest_id)
        if record is None:
            stats.unparseable += 1
            return

        self._transition(DriverState.CLASSIFYING, subject)
        classification = await self.classifier.classify(record)
        stats.classified += 1
        result.collected.append(record)
        if not classification.persist:
            stats.dropped += 1
            return

        self._transition(DriverState.PERSISTING, subject)
        if await self.gateway.persist(record, stats) is PersistOutcome.INSERTED:
            result.records.append(record)

    async def run(self, subject: Subject) -> DriverResult:
        """Walk the subject's timeline.

        Raises:
            FetchError: If a page cannot be fetched.
        """
        result = DriverResult()
        cursor: Optional[str] = None
        pages = 0

        while True:
            self._transition(DriverState.FETCHING, subject)
            page = await self.collector.fetch_page(subject, cursor)
            pages += 1
            result.stats.pages += 1
            result.stats.fetched += len(page.items)

            if not page.items:
                logger.info("timeline_exhausted", subject=subject.screen_name, page=pages)
                break

            self._transition(DriverState.FILTERING, subject)
            filtered = await self.filters.apply(page.items, result.stats)
            for raw in filtered.survivors:
                await self._process(raw, subject, result)

            logger.info(
                "page_processed",
                subject=subject.screen_name,
                page=pages,
                items=len(page.items),
                survivors=len(filtered.survivors),
                has_next=bool(page.next_cursor),
            )

            if not page.next_cursor or (self.max_pages is not None and pages >= self.max_pages):
                break

            self._transition(DriverState.ADVANCE, subject)
            cursor = page.next_cursor
            await self.sleep(self.page_delay)

        self._transition(DriverState.DONE, subject)
        return result
