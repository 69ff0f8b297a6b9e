"""Feed digest: scheduled RSS/Atom ingestion with generated summaries."""

__version__ = "1.0.0"
