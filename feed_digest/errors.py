"""Exception hierarchy for the ingestion pipeline."""

from typing import Optional


class FeedDigestError(Exception):
    """Base class for all feed-digest errors."""


class FetchError(FeedDigestError):
    """Network or HTTP failure while retrieving a single feed."""

    def __init__(self, message: str, source_id: Optional[str] = None):
        super().__init__(message)
        self.source_id = source_id


class ParseError(FeedDigestError):
    """Feed document is not XML or lacks its required root element."""

    def __init__(self, message: str, fragment: str = ""):
        super().__init__(message)
        self.fragment = fragment


class SummarizationError(FeedDigestError):
    """Summary generation failed after exhausting retries."""

    def __init__(self, message: str, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class PersistenceError(FeedDigestError):
    """Storage layer failure."""


class NotificationError(FeedDigestError):
    """Webhook transport failure for a single notification."""
