"""In-memory store for dry runs and tests.

WARNING: Nothing is persisted across runs.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from tweetharvest.storage.base import Subject


@dataclass
class InMemoryTweetStore:
    """TweetStore backed by plain dicts."""

    tweets: dict[str, dict[str, Any]] = field(default_factory=dict)
    users: list[dict[str, Any]] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def tweet_exists(self, tweet_id: str) -> bool:
        return tweet_id in self.tweets

    async def insert_tweet(self, row: dict[str, Any]) -> None:
        async with self._lock:
            self.tweets[row["tweet_id"]] = dict(row)

    async def list_subjects(self, limit: int) -> list[Subject]:
        rows = [
            u
            for u in self.users
            if u.get("rest_id") and u.get("screen_name") and u.get("fetch_enable", True)
        ]
        return [_subject(u) for u in rows[:limit]]

    async def list_users_to_refresh(self) -> list[Subject]:
        return [_subject(u) for u in self.users if u.get("name")]

    async def update_user(self, row_id: Any, data: dict[str, Any]) -> None:
        async with self._lock:
            for user in self.users:
                if user.get("id") == row_id:
                    user.update(data)
                    return


def _subject(row: dict[str, Any]) -> Subject:
    return Subject(
        screen_name=row.get("screen_name") or "",
        rest_id=row.get("rest_id"),
        name=row.get("name"),
        row_id=row.get("id"),
    )
