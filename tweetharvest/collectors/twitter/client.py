"""Async HTTP client for the timeline API gateway.

The gateway exposes the upstream timeline API as plain JSON:

- ``GET /users/{user_id}/tweets?cursor=...`` returns
  ``{"data": [item, ...], "cursor": {"bottom": {"value": "..."}}}``
- ``GET /users/by-screen-name/{screen_name}`` returns ``{"user": {...}}``

Authentication is the upstream ``auth_token`` cookie, forwarded as-is.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from tweetharvest.core.exceptions import (
    CollectorAuthError,
    CollectorError,
    CollectorNotFoundError,
    CollectorRateLimitError,
    CollectorTimeoutError,
    CollectorUnavailableError,
    RetryableError,
)

logger = structlog.get_logger(__name__)


@dataclass
class TimelinePage:
    """One page of a user timeline."""

    items: list[dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)


class TimelineClient:
    """Async client for the timeline API.

    Example:
        async with TimelineClient(base_url, auth_token) as client:
            page = await client.get_user_tweets("44196397")
            while page.next_cursor:
                page = await client.get_user_tweets("44196397", cursor=page.next_cursor)
    """

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Gateway base URL.
            auth_token: Upstream auth token. Guest access when omitted.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "TimelineClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            cookies = {"auth_token": self._auth_token} if self._auth_token else None
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                cookies=cookies,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    @retry(
        retry=retry_if_exception_type(RetryableError),
        stop=stop_after_attempt(3),
        wait=wait_fixed(2),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "timeline_retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()),
        ),
    )
    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        """GET a gateway path and return the decoded JSON body (any JSON value).

        Raises:
            CollectorRateLimitError: On HTTP 429.
            CollectorAuthError: On HTTP 401/403.
            CollectorNotFoundError: On HTTP 404.
            CollectorTimeoutError: On timeouts and connection failures.
            CollectorUnavailableError: On HTTP 502/503/504.
            CollectorError: On other API errors.
        """
        client = await self._ensure_client()
        try:
            response = await client.get(path, params=params)
        except httpx.TransportError as e:
            raise CollectorTimeoutError(
                "timeline",
                f"Request failed: {e}",
                {"path": path},
            ) from e

        if response.status_code == 429:
            raise CollectorRateLimitError("timeline", "Rate limited", {"path": path})
        if response.status_code in (401, 403):
            raise CollectorAuthError(
                "timeline",
                f"Not authorized (HTTP {response.status_code})",
                {"path": path},
            )
        if response.status_code == 404:
            raise CollectorNotFoundError("timeline", f"Not found: {path}", {"path": path})
        if response.status_code in (502, 503, 504):
            raise CollectorUnavailableError(
                "timeline",
                f"Service unavailable (HTTP {response.status_code})",
                {"path": path},
            )
        if response.status_code >= 400:
            raise CollectorError(
                "timeline",
                f"API error {response.status_code}",
                {"path": path, "status_code": response.status_code, "body": response.text[:500]},
            )

        try:
            return response.json() if response.content else {}
        except ValueError as e:
            raise CollectorError("timeline", f"Invalid JSON: {e}", {"path": path}) from e

    async def get_user_tweets(self, user_id: str, cursor: Optional[str] = None) -> TimelinePage:
        """Fetch one page of a user's timeline.

        Args:
            user_id: Upstream rest id of the user.
            cursor: Opaque cursor from the previous page.

        Returns:
            TimelinePage with the raw items and the next cursor, if any.

        Raises:
            CollectorError: If the body is not a page object.
        """
        params = {"cursor": cursor} if cursor else None
        path = f"/users/{user_id}/tweets"
        body = await self._get(path, params=params)

        if not isinstance(body, dict):
            raise _malformed(path, "body is not an object", body)
        items = body.get("data") or []
        if not isinstance(items, list):
            raise _malformed(path, "data is not a list", body)
        items = [item for item in items if isinstance(item, dict)]

        cursor_block = body.get("cursor") or {}
        bottom = cursor_block.get("bottom") if isinstance(cursor_block, dict) else None
        value = bottom.get("value") if isinstance(bottom, dict) else None
        next_cursor = value if isinstance(value, str) and value else None

        logger.debug(
            "timeline_page_fetched",
            user_id=user_id,
            count=len(items),
            has_next=next_cursor is not None,
        )
        return TimelinePage(items=items, next_cursor=next_cursor, raw=body)

    async def get_user_by_screen_name(self, screen_name: str) -> dict[str, Any]:
        """Look up a user profile.

        Returns:
            The raw ``user`` block, or an empty dict when the gateway has none.
        """
        path = f"/users/by-screen-name/{screen_name}"
        body = await self._get(path)
        if not isinstance(body, dict):
            raise _malformed(path, "body is not an object", body)
        user = body.get("user") or {}
        if not isinstance(user, dict):
            raise _malformed(path, "user is not an object", body)
        return user


def _malformed(path: str, reason: str, body: Any) -> CollectorError:
    return CollectorError(
        "timeline",
        f"Malformed page: {reason}",
        {"path": path, "body_type": type(body).__name__},
    )
