"""
TweetHarvest - social timeline ingestion pipeline.

This package contains the modules that pull posts from a timeline API and
store them in Supabase:
- collectors: Timeline API client, raw response shapes and normalization
- ingestion: Filter chain, pagination driver, persistence gateway, run stats
- services: Content classification (rule table + AI) and the ai_draw sink
- storage: Supabase and in-memory tweet/user stores
- config: Pydantic settings
- core: Exceptions and circuit breaker
"""

__version__ = "0.1.0"
