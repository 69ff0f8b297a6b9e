"""Feed ingestion - fetching and parsing RSS/Atom feeds."""

from .interfaces import FeedFormat, FeedDefinition, FeedItem, FetcherInterface
from .parser import parse_feed, detect_format, normalize_date
from .fetcher import FeedFetcher

__all__ = [
    "FeedFormat", "FeedDefinition", "FeedItem", "FetcherInterface",
    "parse_feed", "detect_format", "normalize_date", "FeedFetcher"
]
