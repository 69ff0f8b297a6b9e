"""Result and accumulator types for one ingestion cycle."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from ..storage.interfaces import Article


class ItemStatus(Enum):
    """Terminal state of one feed item within a cycle."""
    SKIPPED_EXISTING = "skipped_existing"
    SAVED_WITH_SUMMARY = "saved_with_summary"
    SAVED_WITHOUT_SUMMARY = "saved_without_summary"
    FAILED = "failed"


@dataclass
class ProcessingOutcome:
    """Result of attempting to ingest one feed item."""
    is_new: bool
    saved_article: Optional[Article] = None


@dataclass
class ItemResult:
    """Per-item result collected into the cycle report."""
    source_id: str
    url: str
    status: ItemStatus
    outcome: Optional[ProcessingOutcome] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != ItemStatus.FAILED


@dataclass
class SourceStats:
    """Per-source counters."""
    fetched: int = 0
    processed: int = 0
    new: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return {
            "fetched": self.fetched,
            "processed": self.processed,
            "new": self.new,
            "errors": self.errors,
        }


@dataclass
class CycleReport:
    """Cycle-scoped accumulator; each run owns exactly one."""
    processed_count: int = 0
    new_articles_count: int = 0
    error_count: int = 0
    sources: Dict[str, SourceStats] = field(default_factory=dict)
    new_articles: List[Article] = field(default_factory=list)
    results: List[ItemResult] = field(default_factory=list)
    notified: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def source(self, source_id: str) -> SourceStats:
        if source_id not in self.sources:
            self.sources[source_id] = SourceStats()
        return self.sources[source_id]

    def record(self, result: ItemResult) -> None:
        """Fold one item result into the counters."""
        self.results.append(result)
        stats = self.source(result.source_id)

        if not result.ok:
            self.error_count += 1
            stats.errors += 1
            return

        self.processed_count += 1
        stats.processed += 1
        if result.outcome and result.outcome.is_new and result.outcome.saved_article:
            self.new_articles_count += 1
            stats.new += 1
            self.new_articles.append(result.outcome.saved_article)

    def finish(self) -> None:
        self.finished_at = datetime.now(timezone.utc)

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "processed_count": self.processed_count,
            "new_articles_count": self.new_articles_count,
            "error_count": self.error_count,
            "notified": self.notified,
            "sources": {k: v.to_dict() for k, v in self.sources.items()},
            "elapsed_seconds": self.elapsed_seconds,
        }
