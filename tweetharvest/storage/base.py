"""Store interface shared by the Supabase and in-memory backends."""

from dataclasses import dataclass
from typing import Any, Optional, Protocol


TWEETS_TABLE = "cron_twitter_tweets"
USERS_TABLE = "cron_twitter_users_ext"


@dataclass(frozen=True)
class Subject:
    """An account whose timeline is ingested (a row of the users table)."""

    screen_name: str
    rest_id: Optional[str] = None
    name: Optional[str] = None
    row_id: Optional[Any] = None


class TweetStore(Protocol):
    """Keyed store for tweets (by tweet id) and users (by row id).

    Every method raises PersistenceError when the backend fails.
    """

    async def tweet_exists(self, tweet_id: str) -> bool: ...

    async def insert_tweet(self, row: dict[str, Any]) -> None: ...

    async def list_subjects(self, limit: int) -> list[Subject]: ...

    async def list_users_to_refresh(self) -> list[Subject]: ...

    async def update_user(self, row_id: Any, data: dict[str, Any]) -> None: ...
