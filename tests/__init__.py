"""
TweetHarvest Test Suite.

- unit/: Normalizer, filters, classifiers, persistence, driver, clients, settings, CLI
- integration/: Full pipeline runs against the in-memory store
- factories.py: Raw timeline item builders and a scripted collector
- conftest.py: Shared fixtures

Run tests with: pytest
"""
