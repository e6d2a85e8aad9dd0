"""Supabase-backed tweet and user store.

The supabase client is synchronous; calls run in the default executor so
the event loop is not blocked.
"""

import asyncio
from typing import Any, Callable, TypeVar

import structlog
from supabase import Client, create_client

from tweetharvest.config.settings import Settings
from tweetharvest.core.exceptions import PersistenceError
from tweetharvest.storage.base import TWEETS_TABLE, USERS_TABLE, Subject

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SupabaseTweetStore:
    """TweetStore implementation over the Supabase REST API.

    Example:
        store = SupabaseTweetStore.from_settings(get_settings())
        if not await store.tweet_exists("1790000000000000000"):
            await store.insert_tweet(record.to_row())
    """

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseTweetStore":
        """Build a store from settings.

        Raises:
            ConfigurationError: If SUPABASE_URL or SUPABASE_KEY is unset.
        """
        settings.require("supabase_url", "supabase_key")
        client = create_client(
            settings.supabase_url,
            settings.supabase_key.get_secret_value(),
        )
        return cls(client)

    async def _run(self, operation: str, func: Callable[[], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func)
        except Exception as e:
            raise PersistenceError(operation, str(e), {"error_type": type(e).__name__}) from e

    async def tweet_exists(self, tweet_id: str) -> bool:
        result = await self._run(
            "tweet_exists",
            lambda: self.client.table(TWEETS_TABLE)
            .select("id")
            .eq("tweet_id", tweet_id)
            .limit(1)
            .execute(),
        )
        return bool(result.data)

    async def insert_tweet(self, row: dict[str, Any]) -> None:
        await self._run(
            "insert_tweet",
            lambda: self.client.table(TWEETS_TABLE).insert(row).execute(),
        )

    async def list_subjects(self, limit: int) -> list[Subject]:
        """Users with a rest id and screen name that have fetching enabled."""
        result = await self._run(
            "list_subjects",
            lambda: self.client.table(USERS_TABLE)
            .select("id, rest_id, name, screen_name")
            .not_.is_("rest_id", "null")
            .not_.is_("screen_name", "null")
            .eq("fetch_enable", True)
            .limit(limit)
            .execute(),
        )
        return [_subject_from_row(row) for row in result.data or []]

    async def list_users_to_refresh(self) -> list[Subject]:
        """Users that have a display name."""
        result = await self._run(
            "list_users_to_refresh",
            lambda: self.client.table(USERS_TABLE)
            .select("id, rest_id, name, screen_name")
            .not_.is_("name", "null")
            .execute(),
        )
        return [_subject_from_row(row) for row in result.data or []]

    async def update_user(self, row_id: Any, data: dict[str, Any]) -> None:
        await self._run(
            "update_user",
            lambda: self.client.table(USERS_TABLE).update(data).eq("id", row_id).execute(),
        )


def _subject_from_row(row: dict[str, Any]) -> Subject:
    return Subject(
        screen_name=row.get("screen_name") or "",
        rest_id=row.get("rest_id"),
        name=row.get("name"),
        row_id=row.get("id"),
    )
