"""Run counters, threaded through the pipeline and returned to the caller."""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RunStats:
    """Counters for one ingestion run (one subject, or merged across subjects)."""

    fetched: int = 0
    filtered: Counter = field(default_factory=Counter)
    unparseable: int = 0
    classified: int = 0
    dropped: int = 0
    persisted: int = 0
    skipped: int = 0
    errors: int = 0
    pages: int = 0

    @property
    def filtered_total(self) -> int:
        return sum(self.filtered.values())

    def record_rejection(self, reason: str) -> None:
        self.filtered[reason] += 1

    def merge(self, other: "RunStats") -> None:
        """Add another run's counters into this one."""
        self.fetched += other.fetched
        self.filtered.update(other.filtered)
        self.unparseable += other.unparseable
        self.classified += other.classified
        self.dropped += other.dropped
        self.persisted += other.persisted
        self.skipped += other.skipped
        self.errors += other.errors
        self.pages += other.pages

    def to_dict(self) -> dict[str, Any]:
        return {
            "fetched": self.fetched,
            "filtered": self.filtered_total,
            "filtered_by_reason": dict(self.filtered),
            "unparseable": self.unparseable,
            "classified": self.classified,
            "dropped": self.dropped,
            "persisted": self.persisted,
            "skipped": self.skipped,
            "errors": self.errors,
            "pages": self.pages,
        }

    def summary(self) -> str:
        reasons = ", ".join(f"{k}={v}" for k, v in sorted(self.filtered.items())) or "none"
        return (
            f"fetched={self.fetched} filtered={self.filtered_total} ({reasons}) "
            f"classified={self.classified} persisted={self.persisted} "
            f"skipped={self.skipped} errors={self.errors}"
        )
