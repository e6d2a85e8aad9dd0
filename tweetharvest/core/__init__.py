"""
Core infrastructure modules for TweetHarvest.

- exceptions: Standardized exception hierarchy
- circuit_breaker: Fail-fast guard for the timeline API
"""

from tweetharvest.core.exceptions import (
    TweetHarvestError,
    RetryableError,
    PermanentError,
    CollectorError,
    CollectorRateLimitError,
    CollectorTimeoutError,
    CollectorAuthError,
    CollectorNotFoundError,
    CollectorUnavailableError,
    FetchError,
    ClassificationError,
    SinkError,
    PersistenceError,
    ConfigurationError,
    CircuitBreakerOpenError,
)

from tweetharvest.core.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
)

__all__ = [
    # Exceptions
    "TweetHarvestError",
    "RetryableError",
    "PermanentError",
    "CollectorError",
    "CollectorRateLimitError",
    "CollectorTimeoutError",
    "CollectorAuthError",
    "CollectorNotFoundError",
    "CollectorUnavailableError",
    "FetchError",
    "ClassificationError",
    "SinkError",
    "PersistenceError",
    "ConfigurationError",
    "CircuitBreakerOpenError",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitState",
]
