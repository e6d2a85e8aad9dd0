"""
Pytest Configuration and Shared Fixtures.

This module provides common fixtures for all tests:

- store: Empty in-memory tweet store
- subject: Subject for the account "alice"
- sample_record: Normalized TweetRecord without media
- fixed_now: Clock pinned to tests.factories.NOW
- no_sleep: AsyncMock standing in for asyncio.sleep
"""

from unittest.mock import AsyncMock

import pytest

from tests.factories import NOW, direct_item
from tweetharvest.collectors.twitter.normalizer import normalize
from tweetharvest.storage.base import Subject
from tweetharvest.storage.memory import InMemoryTweetStore


@pytest.fixture
def store() -> InMemoryTweetStore:
    return InMemoryTweetStore()


@pytest.fixture
def subject() -> Subject:
    return Subject(screen_name="alice", rest_id="1001", name="Alice", row_id=1)


@pytest.fixture
def sample_record():
    return normalize(direct_item())


@pytest.fixture
def fixed_now():
    return lambda: NOW


@pytest.fixture
def no_sleep() -> AsyncMock:
    return AsyncMock()
