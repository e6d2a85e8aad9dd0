"""
ai_draw sink.

Records classified as ``ai_draw`` are POSTed as JSON to an external endpoint
before they are persisted. Only HTTP 200 counts as accepted.
"""

from typing import Optional

import httpx
import structlog

from tweetharvest.collectors.normalization.schema import TweetRecord
from tweetharvest.core.exceptions import SinkError

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 30.0


class AiDrawSink:
    """HTTP sink for ai_draw records.

    Example:
        async with AiDrawSink(settings.ai_draw_sink_url) as sink:
            accepted = await sink.submit(record)
    """

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "AiDrawSink":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def _post(self, record: TweetRecord) -> None:
        """POST the record; raise SinkError unless the response is 200."""
        client = await self._ensure_client()
        try:
            response = await client.post(self.url, json=record.to_payload())
        except httpx.RequestError as e:
            raise SinkError(
                f"ai_draw sink unreachable: {e}",
                details={"tweet_id": record.id, "error_type": type(e).__name__},
            ) from e

        if response.status_code != 200:
            raise SinkError(
                f"ai_draw sink rejected record with status {response.status_code}",
                status_code=response.status_code,
                details={"tweet_id": record.id, "body": response.text[:200]},
            )

    async def submit(self, record: TweetRecord) -> bool:
        """Send one record. Returns True only on HTTP 200; never raises."""
        try:
            await self._post(record)
        except SinkError as e:
            logger.warning(
                "ai_draw_sink_failed",
                tweet_id=record.id,
                status_code=e.status_code,
                error=e.message,
            )
            return False

        logger.info("ai_draw_sink_accepted", tweet_id=record.id)
        return True
