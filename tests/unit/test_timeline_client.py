"""Unit tests for the timeline API client and collector."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from tenacity import wait_none

from tests.factories import direct_item, user_block
from tweetharvest.collectors.twitter.client import TimelineClient, TimelinePage
from tweetharvest.collectors.twitter.collector import TwitterCollector
from tweetharvest.core.circuit_breaker import CircuitBreaker, CircuitState
from tweetharvest.core.exceptions import (
    CircuitBreakerOpenError,
    CollectorAuthError,
    CollectorError,
    CollectorNotFoundError,
    CollectorRateLimitError,
    CollectorTimeoutError,
    CollectorUnavailableError,
    FetchError,
)
from tweetharvest.storage.base import Subject

BASE_URL = "https://timeline.example.com"


def client_for(handler, token="secret-token"):
    return TimelineClient(BASE_URL, auth_token=token, transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def _no_retry_wait(monkeypatch):
    monkeypatch.setattr(TimelineClient._get.retry, "wait", wait_none())


class TestTimelineClient:
    """Test the HTTP layer."""

    @pytest.mark.asyncio
    async def test_get_user_tweets_parses_page(self):
        """Items come from data, the cursor from cursor.bottom.value."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={"data": [direct_item()], "cursor": {"bottom": {"value": "DAABCgAB"}}},
            )

        async with client_for(handler) as client:
            page = await client.get_user_tweets("1001", cursor="prev")

        assert isinstance(page, TimelinePage)
        assert len(page.items) == 1
        assert page.next_cursor == "DAABCgAB"
        assert seen[0].url.path == "/users/1001/tweets"
        assert seen[0].url.params["cursor"] == "prev"
        assert "auth_token=secret-token" in seen[0].headers["cookie"]

    @pytest.mark.asyncio
    async def test_last_page_has_no_cursor(self):
        def handler(request):
            return httpx.Response(200, json={"data": []})

        async with client_for(handler) as client:
            page = await client.get_user_tweets("1001")

        assert page.items == []
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_first_page_sends_no_cursor(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": []})

        async with client_for(handler) as client:
            await client.get_user_tweets("1001")

        assert "cursor" not in seen[0].url.params

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,error",
        [
            (429, CollectorRateLimitError),
            (401, CollectorAuthError),
            (403, CollectorAuthError),
            (404, CollectorNotFoundError),
            (500, CollectorError),
            (503, CollectorUnavailableError),
        ],
    )
    async def test_http_errors_mapped(self, status_code, error):
        def handler(request):
            return httpx.Response(status_code, text="nope")

        async with client_for(handler) as client:
            with pytest.raises(error):
                await client.get_user_tweets("1001")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 503])
    async def test_retryable_status_retried(self, status_code):
        """Rate limits and gateway outages are retried before succeeding."""
        responses = [httpx.Response(status_code), httpx.Response(200, json={"data": []})]

        def handler(request):
            return responses.pop(0)

        async with client_for(handler) as client:
            page = await client.get_user_tweets("1001")

        assert page.items == []
        assert responses == []

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused")

        async with client_for(handler) as client:
            with pytest.raises(CollectorTimeoutError):
                await client.get_user_tweets("1001")

        assert len(calls) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 404, 500])
    async def test_permanent_errors_not_retried(self, status_code):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(status_code)

        async with client_for(handler) as client:
            with pytest.raises(CollectorError):
                await client.get_user_tweets("1001")

        assert len(calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [[], [direct_item()], {"data": {"0": "x"}}, "page"],
    )
    async def test_malformed_page(self, body):
        """A body that is not a page object is a CollectorError."""

        def handler(request):
            return httpx.Response(200, json=body)

        async with client_for(handler) as client:
            with pytest.raises(CollectorError, match="Malformed page"):
                await client.get_user_tweets("1001")

    @pytest.mark.asyncio
    async def test_malformed_cursor_ignored(self):
        def handler(request):
            return httpx.Response(200, json={"data": [direct_item(), 7], "cursor": "c1"})

        async with client_for(handler) as client:
            page = await client.get_user_tweets("1001")

        assert len(page.items) == 1
        assert page.next_cursor is None

    @pytest.mark.asyncio
    async def test_malformed_user_lookup(self):
        def handler(request):
            return httpx.Response(200, json=[{"user": user_block()}])

        async with client_for(handler) as client:
            with pytest.raises(CollectorError, match="Malformed page"):
                await client.get_user_by_screen_name("alice")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        async with client_for(handler) as client:
            with pytest.raises(CollectorError):
                await client.get_user_tweets("1001")

    @pytest.mark.asyncio
    async def test_user_lookup(self):
        def handler(request):
            assert request.url.path == "/users/by-screen-name/alice"
            return httpx.Response(200, json={"user": user_block()})

        async with client_for(handler) as client:
            user = await client.get_user_by_screen_name("alice")

        assert user["restId"] == "1001"

    @pytest.mark.asyncio
    async def test_user_lookup_without_user(self):
        def handler(request):
            return httpx.Response(200, json={})

        async with client_for(handler, token=None) as client:
            assert await client.get_user_by_screen_name("ghost") == {}


class TestTwitterCollector:
    """Test breaker, error wrapping and debug dumps."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.get_user_tweets = AsyncMock(return_value=TimelinePage(items=[], raw={"data": []}))
        client.get_user_by_screen_name = AsyncMock(return_value=user_block(rest_id="777"))
        return client

    @pytest.mark.asyncio
    async def test_fetch_page(self, client, subject):
        page = await TwitterCollector(client).fetch_page(subject, "c1")

        assert page.items == []
        client.get_user_tweets.assert_awaited_once_with("1001", cursor="c1")

    @pytest.mark.asyncio
    async def test_subject_without_rest_id(self, client):
        with pytest.raises(FetchError):
            await TwitterCollector(client).fetch_page(Subject(screen_name="nobody"))

        client.get_user_tweets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_collector_error_wrapped(self, client, subject):
        """Transport errors surface as FetchError naming the subject."""
        client.get_user_tweets.side_effect = CollectorRateLimitError("timeline", "Rate limited")

        with pytest.raises(FetchError) as exc_info:
            await TwitterCollector(client).fetch_page(subject)

        assert exc_info.value.subject == "alice"
        assert isinstance(exc_info.value.__cause__, CollectorRateLimitError)

    @pytest.mark.asyncio
    async def test_breaker_opens_after_repeated_failures(self, client, subject):
        """Once the breaker opens the API is no longer called."""
        client.get_user_tweets.side_effect = CollectorError("timeline", "API error 500")
        collector = TwitterCollector(client)

        for _ in range(collector.breaker.failure_threshold):
            with pytest.raises(FetchError):
                await collector.fetch_page(subject)
        calls = client.get_user_tweets.await_count

        with pytest.raises(FetchError, match="Circuit breaker open") as exc_info:
            await collector.fetch_page(subject)

        assert client.get_user_tweets.await_count == calls
        assert isinstance(exc_info.value.__cause__, CircuitBreakerOpenError)
        assert collector.breaker.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_breaker_not_shared_between_collectors(self, client, subject):
        """A new collector starts with a closed breaker."""
        client.get_user_tweets.side_effect = CollectorError("timeline", "API error 500")
        first = TwitterCollector(client, {"breaker_failure_threshold": 1})
        with pytest.raises(FetchError):
            await first.fetch_page(subject)
        assert first.breaker.can_execute() is False

        client.get_user_tweets.side_effect = None
        second = TwitterCollector(client, {"breaker_failure_threshold": 1})

        page = await second.fetch_page(subject)

        assert page.items == []
        assert second.breaker.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_injected_breaker_used(self, client, subject):
        breaker = CircuitBreaker(name="shared", failure_threshold=1)
        await breaker.record_failure()

        with pytest.raises(FetchError):
            await TwitterCollector(client, breaker=breaker).fetch_page(subject)

        client.get_user_tweets.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_debug_dump(self, client, subject, tmp_path):
        collector = TwitterCollector(client, {"debug": True, "debug_dir": str(tmp_path)})

        await collector.fetch_page(subject)

        dumps = list(tmp_path.glob("api-response-alice-*.json"))
        assert len(dumps) == 1

    @pytest.mark.asyncio
    async def test_resolve_user_id(self, client):
        assert await TwitterCollector(client).resolve_user_id("alice") == "777"
        client.get_user_by_screen_name.assert_awaited_once_with("alice")

    @pytest.mark.asyncio
    async def test_resolve_unknown_user(self, client):
        client.get_user_by_screen_name.return_value = {}

        assert await TwitterCollector(client).resolve_user_id("ghost") is None
