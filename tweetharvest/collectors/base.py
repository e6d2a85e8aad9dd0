"""Base collector interface for timeline collectors.

Collectors wrap a transport client and expose one page of a subject's
timeline at a time.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from tweetharvest.collectors.twitter.client import TimelinePage
    from tweetharvest.storage.base import Subject


class BaseCollector(ABC):
    """Abstract base class for timeline collectors."""

    def __init__(self, config: dict[str, Any]):
        """Initialize collector with configuration.

        Args:
            config: Configuration dictionary with collector-specific settings.
        """
        self.config = config

    @abstractmethod
    async def fetch_page(self, subject: "Subject", cursor: Optional[str] = None) -> "TimelinePage":
        """Fetch one timeline page for a subject.

        Raises:
            FetchError: If the page cannot be fetched.
        """
        ...
