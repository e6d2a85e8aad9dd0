"""Integration tests for the ingestion pipeline.

Tests the flow: timeline pages -> filters -> normalizer -> classifier
(AI + ai_draw sink) -> persistence, against the in-memory store. The AI
service is mocked; the sink runs over httpx.MockTransport.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tests.factories import FakeCollector, days_ago, direct_item, legacy_item, page, photo
from tweetharvest.collectors.twitter.client import TimelineClient
from tweetharvest.collectors.twitter.collector import TwitterCollector
from tweetharvest.ingestion.driver import PaginationDriver
from tweetharvest.ingestion.filters import FilterPipeline
from tweetharvest.ingestion.persistence import PersistenceGateway
from tweetharvest.ingestion.runner import run_incremental
from tweetharvest.services.ai_draw_sink import AiDrawSink
from tweetharvest.services.content_classifier import ContentClassifier

SINK_URL = "https://sink.example.com/social/save_from_twitter_fetch"


def ai_draw_media():
    return [
        photo("https://pbs.twimg.com/castle1.jpg", "a castle at dusk, oil painting"),
        photo("https://pbs.twimg.com/castle2.jpg", "the same castle at dawn"),
    ]


class TestIngestionPipeline:
    """Test a subject walk end to end."""

    @pytest.fixture
    def analyzer(self):
        analyzer = MagicMock()
        analyzer.content_type_analysis = AsyncMock(
            return_value={
                "content_type": "ai_draw",
                "analysis_reason": "prompt with rendered images",
                "content_type_score": 0.92,
            }
        )
        return analyzer

    @pytest.fixture
    def sink_requests(self):
        return []

    def make_sink(self, status_code, sink_requests):
        def handler(request):
            sink_requests.append(json.loads(request.content))
            return httpx.Response(status_code, json={})

        return AiDrawSink(SINK_URL, transport=httpx.MockTransport(handler))

    def make_driver(self, collector, store, analyzer, sink, now, sleep, max_pages=None):
        return PaginationDriver(
            collector=collector,
            filters=FilterPipeline(store, max_age_days=30, now=now),
            classifier=ContentClassifier(analyzer, sink),
            gateway=PersistenceGateway(store),
            max_pages=max_pages,
            page_delay=2.0,
            sleep=sleep,
        )

    @pytest.mark.asyncio
    async def test_repost_of_alice_is_excluded(
        self, store, subject, analyzer, sink_requests, fixed_now, no_sleep
    ):
        """'RT @alice' is dropped; the organic post is stored as a plain post."""
        collector = FakeCollector(
            [
                page(
                    direct_item(tweet_id="10", text="RT @alice: my new painting"),
                    direct_item(tweet_id="11", text="my new painting"),
                )
            ]
        )

        async with self.make_sink(200, sink_requests) as sink:
            driver = self.make_driver(collector, store, analyzer, sink, fixed_now, no_sleep)
            result = await driver.run(subject)

        assert list(store.tweets) == ["11"]
        assert store.tweets["11"]["content_type"] == "post"
        assert result.stats.filtered == {"repost": 1}
        analyzer.content_type_analysis.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ai_draw_with_failing_sink_persists_nothing(
        self, store, subject, analyzer, sink_requests, fixed_now, no_sleep
    ):
        """A non-200 sink response means the ai_draw record is not stored."""
        collector = FakeCollector([page(direct_item(tweet_id="20", media=ai_draw_media()))])

        async with self.make_sink(500, sink_requests) as sink:
            driver = self.make_driver(collector, store, analyzer, sink, fixed_now, no_sleep)
            result = await driver.run(subject)

        assert store.tweets == {}
        assert result.stats.persisted == 0
        assert result.stats.dropped == 1
        assert [r["id"] for r in sink_requests] == ["20"]

    @pytest.mark.asyncio
    async def test_ai_draw_accepted_by_sink_is_stored(
        self, store, subject, analyzer, sink_requests, fixed_now, no_sleep
    ):
        collector = FakeCollector([page(legacy_item(tweet_id="21", media=ai_draw_media()))])

        async with self.make_sink(200, sink_requests) as sink:
            driver = self.make_driver(collector, store, analyzer, sink, fixed_now, no_sleep)
            await driver.run(subject)

        assert store.tweets["21"]["content_type"] == "ai_draw"
        assert sink_requests[0]["content_type"] == "ai_draw"
        assert len(store.tweets["21"]["images"]) == 2

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(
        self, store, subject, analyzer, sink_requests, fixed_now, no_sleep
    ):
        """A second run over the same pages stores nothing new."""

        def pages():
            return [
                page(direct_item(tweet_id="30"), legacy_item(tweet_id="31"), cursor="c1"),
                page(direct_item(tweet_id="32")),
            ]

        async with self.make_sink(200, sink_requests) as sink:
            first = await self.make_driver(
                FakeCollector(pages()), store, analyzer, sink, fixed_now, no_sleep
            ).run(subject)
            second = await self.make_driver(
                FakeCollector(pages()), store, analyzer, sink, fixed_now, no_sleep
            ).run(subject)

        assert first.stats.persisted == 3
        assert second.stats.persisted == 0
        assert second.stats.filtered == {"duplicate": 3}
        assert sorted(store.tweets) == ["30", "31", "32"]

    @pytest.mark.asyncio
    async def test_mixed_page(self, store, subject, analyzer, sink_requests, fixed_now, no_sleep):
        """Every filter stage and both shapes on one page."""
        await store.insert_tweet({"tweet_id": "44"})
        collector = FakeCollector(
            [
                page(
                    direct_item(tweet_id="40", promoted=True),
                    direct_item(tweet_id="41", created_at=days_ago(31)),
                    direct_item(tweet_id="42", created_at=days_ago(30)),
                    legacy_item(tweet_id="43", text="RT @bob: look"),
                    legacy_item(tweet_id="44"),
                    legacy_item(tweet_id="45"),
                )
            ]
        )

        async with self.make_sink(200, sink_requests) as sink:
            driver = self.make_driver(collector, store, analyzer, sink, fixed_now, no_sleep)
            result = await driver.run(subject)

        assert [r.id for r in result.records] == ["42", "45"]
        assert result.stats.filtered == {
            "promoted": 1,
            "stale": 1,
            "repost": 1,
            "duplicate": 1,
        }
        assert result.stats.fetched == 6
        assert result.stats.classified == 2


class TestIncrementalRun:
    """Test the multi-subject run."""

    @pytest.mark.asyncio
    async def test_failed_subject_does_not_stop_run(self, store, fixed_now, no_sleep):
        store.users.extend(
            [
                {"id": 1, "rest_id": "1001", "screen_name": "alice", "fetch_enable": True},
                {"id": 2, "rest_id": "1002", "screen_name": "bob", "fetch_enable": True},
            ]
        )
        analyzer = MagicMock()
        analyzer.content_type_analysis = AsyncMock()
        sink = MagicMock()
        sink.submit = AsyncMock(return_value=True)
        collector = FakeCollector(
            [page(direct_item(tweet_id="50", screen_name="bob"))], failing=("alice",)
        )
        driver = PaginationDriver(
            collector=collector,
            filters=FilterPipeline(store, now=fixed_now),
            classifier=ContentClassifier(analyzer, sink),
            gateway=PersistenceGateway(store),
            sleep=no_sleep,
        )

        stats = await run_incremental(store, driver, sleep=no_sleep)

        assert stats.errors == 1
        assert stats.persisted == 1
        assert store.tweets["50"]["user_id"] == "1002"

    @pytest.mark.asyncio
    async def test_malformed_page_aborts_only_that_subject(self, store, fixed_now, no_sleep):
        """A non-object timeline body fails its subject; the next one is stored."""
        store.users.extend(
            [
                {"id": 1, "rest_id": "1001", "screen_name": "alice", "fetch_enable": True},
                {"id": 2, "rest_id": "1002", "screen_name": "bob", "fetch_enable": True},
            ]
        )
        bodies = {
            "/users/1001/tweets": [],
            "/users/1002/tweets": {
                "data": [direct_item(tweet_id="77", screen_name="bob", user_rest_id="1002")]
            },
        }

        def handler(request):
            return httpx.Response(200, json=bodies[request.url.path])

        analyzer = MagicMock()
        analyzer.content_type_analysis = AsyncMock()
        sink = MagicMock()
        sink.submit = AsyncMock(return_value=True)

        async with TimelineClient(
            "https://timeline.example.com", transport=httpx.MockTransport(handler)
        ) as client:
            driver = PaginationDriver(
                collector=TwitterCollector(client),
                filters=FilterPipeline(store, now=fixed_now),
                classifier=ContentClassifier(analyzer, sink),
                gateway=PersistenceGateway(store),
                sleep=no_sleep,
            )
            stats = await run_incremental(store, driver, sleep=no_sleep)

        assert stats.errors == 1
        assert stats.persisted == 1
        assert list(store.tweets) == ["77"]

    @pytest.mark.asyncio
    async def test_unexpected_ai_error_does_not_stop_run(self, store, fixed_now, no_sleep):
        """An AI call failing with a non-library error still stores the record as unknown."""
        store.users.append(
            {"id": 1, "rest_id": "1001", "screen_name": "alice", "fetch_enable": True}
        )
        analyzer = MagicMock()
        analyzer.content_type_analysis = AsyncMock(side_effect=TimeoutError("AI call timed out"))
        sink = MagicMock()
        sink.submit = AsyncMock(return_value=True)
        collector = FakeCollector(
            [page(direct_item(tweet_id="60", media=ai_draw_media()), direct_item(tweet_id="61"))]
        )
        driver = PaginationDriver(
            collector=collector,
            filters=FilterPipeline(store, now=fixed_now),
            classifier=ContentClassifier(analyzer, sink),
            gateway=PersistenceGateway(store),
            sleep=no_sleep,
        )

        stats = await run_incremental(store, driver, sleep=no_sleep)

        assert stats.persisted == 2
        assert store.tweets["60"]["content_type"] == "unknown"
        assert store.tweets["61"]["content_type"] == "post"
        sink.submit.assert_not_awaited()
