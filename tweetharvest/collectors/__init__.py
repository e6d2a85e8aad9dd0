"""
Timeline data sources.

- base: BaseCollector interface
- normalization: Canonical TweetRecord schema and ordered shape extraction
- twitter: Timeline API client, collector and normalizer

Example:
    from tweetharvest.collectors import TimelineClient, TwitterCollector

    async with TimelineClient(settings.timeline_api_url, token) as client:
        collector = TwitterCollector(client)
        page = await collector.fetch_page(subject)
"""

from tweetharvest.collectors.base import BaseCollector
from tweetharvest.collectors.twitter import TimelineClient, TimelinePage, TwitterCollector

__all__ = [
    "BaseCollector",
    "TimelineClient",
    "TimelinePage",
    "TwitterCollector",
]
