"""
Core exception hierarchy for TweetHarvest.

Provides standardized exception types with categorization for retry logic.
Only ConfigurationError is fatal; every other error is recovered at a
well-defined boundary of the ingestion pipeline.
"""

from typing import Any, Optional


# =============================================================================
# Base Exceptions
# =============================================================================


class TweetHarvestError(Exception):
    """Base exception for all TweetHarvest errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(TweetHarvestError):
    """
    Transient errors that should be retried.

    Examples: Timeouts, temporary network issues.
    """

    pass


class PermanentError(TweetHarvestError):
    """
    Errors that won't be fixed by retrying.

    Examples: Invalid input, missing required data, authentication failures.
    """

    pass


# =============================================================================
# Collector Errors
# =============================================================================


class CollectorError(TweetHarvestError):
    """Base exception for collector errors."""

    def __init__(
        self,
        collector_type: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.collector_type = collector_type
        super().__init__(f"[{collector_type}] {message}", details)


class CollectorRateLimitError(CollectorError, RetryableError):
    """Raised when a collector hits rate limits."""

    pass


class CollectorTimeoutError(CollectorError, RetryableError):
    """Raised when a collector operation times out."""

    pass


class CollectorAuthError(CollectorError, PermanentError):
    """Raised when collector authentication fails."""

    pass


class CollectorNotFoundError(CollectorError, PermanentError):
    """Raised when requested resource is not found."""

    pass


class CollectorUnavailableError(CollectorError, RetryableError):
    """Raised when collector service is temporarily unavailable."""

    pass


class FetchError(CollectorError):
    """Raised when a timeline page cannot be fetched for a subject.

    Recovered at the per-subject loop: the subject is aborted, the others
    still run.
    """

    def __init__(
        self,
        subject: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.subject = subject
        super().__init__("timeline", f"@{subject}: {message}", details)


# =============================================================================
# Pipeline Errors
# =============================================================================


class ClassificationError(TweetHarvestError):
    """AI classification call failed or returned a malformed result."""

    pass


class SinkError(TweetHarvestError):
    """The ai_draw sink rejected a record or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details)


class PersistenceError(TweetHarvestError):
    """Store query or insert failed."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.operation = operation
        super().__init__(f"[{operation}] {message}", details)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PermanentError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitBreakerOpenError(RetryableError):
    """Raised when circuit breaker is open and blocking requests."""

    def __init__(self, service: str, recovery_time: float):
        self.service = service
        self.recovery_time = recovery_time
        super().__init__(
            f"Circuit breaker open for {service}. Recovery in {recovery_time:.1f}s",
            {"service": service, "recovery_time": recovery_time},
        )
