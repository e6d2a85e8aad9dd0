"""Twitter timeline collector module.

Provides TimelineClient for the timeline API, TwitterCollector extending
BaseCollector, the raw response models and the normalizer.
"""

from tweetharvest.collectors.twitter.client import TimelineClient, TimelinePage
from tweetharvest.collectors.twitter.collector import TwitterCollector
from tweetharvest.collectors.twitter.normalizer import (
    extract_created_at,
    is_promoted,
    is_retweet,
    normalize,
    resolve_identity,
)

__all__ = [
    "TimelineClient",
    "TimelinePage",
    "TwitterCollector",
    "extract_created_at",
    "is_promoted",
    "is_retweet",
    "normalize",
    "resolve_identity",
]
