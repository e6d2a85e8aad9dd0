"""
Ingestion pipeline.

- filters: ordered promoted/stale/repost/duplicate filter
- persistence: idempotent insert-if-absent gateway
- driver: per-subject pagination state machine
- runner: incremental, full-history and user-refresh run modes
- stats: run counters
"""

from tweetharvest.ingestion.driver import DriverResult, DriverState, PaginationDriver
from tweetharvest.ingestion.filters import FilterPipeline, FilterResult, RejectionReason
from tweetharvest.ingestion.persistence import PersistenceGateway, PersistOutcome
from tweetharvest.ingestion.runner import (
    RefreshStats,
    UserRefresher,
    run_history,
    run_incremental,
)
from tweetharvest.ingestion.stats import RunStats

__all__ = [
    "DriverResult",
    "DriverState",
    "FilterPipeline",
    "FilterResult",
    "PaginationDriver",
    "PersistOutcome",
    "PersistenceGateway",
    "RefreshStats",
    "RejectionReason",
    "RunStats",
    "UserRefresher",
    "run_history",
    "run_incremental",
]
