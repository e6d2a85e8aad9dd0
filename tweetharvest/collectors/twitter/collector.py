"""Twitter timeline collector extending BaseCollector.

Adds the circuit breaker, FetchError wrapping and debug dumps on top of
TimelineClient.
"""

import json
import time
from pathlib import Path
from typing import Any, Optional

import structlog

from tweetharvest.collectors.base import BaseCollector
from tweetharvest.collectors.twitter.client import TimelineClient, TimelinePage
from tweetharvest.collectors.twitter.models import RawUser
from tweetharvest.core.circuit_breaker import CircuitBreaker
from tweetharvest.core.exceptions import CircuitBreakerOpenError, CollectorError, FetchError
from tweetharvest.storage.base import Subject

logger = structlog.get_logger(__name__)


class TwitterCollector(BaseCollector):
    """Collector for user timelines.

    Config options:
        debug: Dump every fetched page as JSON (default False)
        debug_dir: Directory for dumps (default "debug")
        breaker_failure_threshold: Consecutive failures that open the breaker (default 5)
        breaker_recovery_timeout: Seconds before the breaker half-opens (default 60)

    Each collector owns its breaker unless one is passed in, so failures in
    one run never fail-fast a later run.

    Example:
        async with TimelineClient(url, token) as client:
            collector = TwitterCollector(client, {"debug": True})
            page = await collector.fetch_page(subject)
    """

    def __init__(
        self,
        client: TimelineClient,
        config: Optional[dict[str, Any]] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        super().__init__(config or {})
        self.client = client
        self.debug = bool(self.config.get("debug", False))
        self.debug_dir = Path(self.config.get("debug_dir", "debug"))
        self.breaker = breaker or CircuitBreaker(
            name="timeline",
            failure_threshold=self.config.get("breaker_failure_threshold", 5),
            recovery_timeout=self.config.get("breaker_recovery_timeout", 60.0),
        )

    async def fetch_page(self, subject: Subject, cursor: Optional[str] = None) -> TimelinePage:
        """Fetch one page of the subject's timeline.

        Raises:
            FetchError: If the breaker is open, the subject has no rest id,
                or the API call fails. The underlying CircuitBreakerOpenError
                or CollectorError is chained as the cause.
        """
        if not subject.rest_id:
            raise FetchError(subject.screen_name, "Subject has no rest id")

        if not self.breaker.can_execute():
            error = CircuitBreakerOpenError(self.breaker.name, self.breaker.time_until_recovery())
            logger.warning("timeline_breaker_open", subject=subject.screen_name, **error.details)
            raise FetchError(subject.screen_name, error.message, error.details) from error

        logger.info(
            "fetching_timeline_page",
            subject=subject.screen_name,
            user_id=subject.rest_id,
            cursor=cursor,
        )
        try:
            page = await self.client.get_user_tweets(subject.rest_id, cursor=cursor)
        except CollectorError as e:
            await self.breaker.record_failure()
            logger.error(
                "timeline_fetch_failed",
                subject=subject.screen_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise FetchError(
                subject.screen_name,
                f"Failed to fetch timeline: {e.message}",
                {"cursor": cursor, **e.details},
            ) from e

        await self.breaker.record_success()
        if self.debug:
            self.dump(page.raw, f"api-response-{subject.screen_name}-{int(time.time() * 1000)}")
        return page

    async def resolve_user_id(self, screen_name: str) -> Optional[str]:
        """Look up the rest id for a handle. Returns None if unknown."""
        user = RawUser.model_validate(await self.client.get_user_by_screen_name(screen_name))
        return user.rest_id or None

    def dump(self, payload: Any, label: str) -> Path:
        """Write ``payload`` as pretty JSON to ``{debug_dir}/{label}.json``."""
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        path = self.debug_dir / f"{label}.json"
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("debug_dump_written", path=str(path))
        return path
