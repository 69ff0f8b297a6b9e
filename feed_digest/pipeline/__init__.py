"""Pipeline orchestration - one ingestion cycle per trigger."""

from .models import CycleReport, ItemResult, ItemStatus, ProcessingOutcome, SourceStats
from .cycle import IngestionPipeline, run_ingestion_cycle

__all__ = [
    "CycleReport", "ItemResult", "ItemStatus", "ProcessingOutcome", "SourceStats",
    "IngestionPipeline", "run_ingestion_cycle"
]
