"""
Persistence backends.

- base: Subject and the TweetStore protocol
- supabase_store: Supabase implementation (tables cron_twitter_tweets, cron_twitter_users_ext)
- memory: In-memory implementation for dry runs
"""

from tweetharvest.storage.base import TWEETS_TABLE, USERS_TABLE, Subject, TweetStore
from tweetharvest.storage.memory import InMemoryTweetStore
from tweetharvest.storage.supabase_store import SupabaseTweetStore

__all__ = [
    "TWEETS_TABLE",
    "USERS_TABLE",
    "Subject",
    "TweetStore",
    "InMemoryTweetStore",
    "SupabaseTweetStore",
]
