"""Interface definitions for feed ingestion."""

from dataclasses import dataclass
from typing import Dict, List
from enum import Enum


class FeedFormat(Enum):
    """Declared dialect of a feed document."""
    RSS = "rss"
    ATOM = "atom"
    AUTO = "auto"  # decided per payload by detect_format()


@dataclass(frozen=True)
class FeedDefinition:
    """Configuration for a single feed source."""
    id: str
    url: str
    format: FeedFormat
    display_name: str
    color: int
    enabled: bool = True


@dataclass
class FeedItem:
    """One item/entry parsed out of a feed document."""
    title: str = ""
    url: str = ""
    published_date: str = ""
    content: str = ""
    # True when published_date is the parse-time clock, not the feed's own date
    date_was_fallback: bool = False


class FetcherInterface:
    """Interface for feed fetching."""

    async def fetch_feed(self, source: FeedDefinition) -> List[FeedItem]:
        """Fetch and parse a single feed."""
        raise NotImplementedError

    async def fetch_all(self, sources: List[FeedDefinition]) -> Dict[str, List[FeedItem]]:
        """Fetch every source; failed sources map to an empty list."""
        raise NotImplementedError
