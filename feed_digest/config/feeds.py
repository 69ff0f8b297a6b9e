"""Feed source registry loader."""

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Tuple

from ..ingestion.interfaces import FeedDefinition, FeedFormat
from .settings import settings

DEFAULT_CONFIG_PATH = Path(__file__).parent / "feeds.json"

# Embed color for sources missing from the registry
DEFAULT_COLOR = 0x95A5A6


def load_feeds(config_path: str = None) -> List[FeedDefinition]:
    """Load feed definitions from a JSON file."""
    if config_path is None:
        config_path = settings.feeds_path or DEFAULT_CONFIG_PATH

    with open(config_path) as f:
        data = json.load(f)

    feeds = []
    seen = set()
    for feed_data in data.get("feeds", []):
        feed_id = feed_data["id"]
        if feed_id in seen:
            raise ValueError(f"Duplicate feed id in {config_path}: {feed_id}")
        seen.add(feed_id)

        feeds.append(FeedDefinition(
            id=feed_id,
            url=feed_data["url"],
            format=FeedFormat(feed_data.get("format", "auto")),
            display_name=feed_data.get("display_name", feed_id),
            color=_parse_color(feed_data.get("color", DEFAULT_COLOR)),
            enabled=feed_data.get("enabled", True),
        ))

    return feeds


@lru_cache(maxsize=1)
def get_feeds() -> Tuple[FeedDefinition, ...]:
    """Process-wide registry, loaded once."""
    return tuple(load_feeds())


def get_feed_by_id(feed_id: str, feeds: Optional[List[FeedDefinition]] = None) -> Optional[FeedDefinition]:
    """Look up a feed definition by id."""
    for feed in feeds if feeds is not None else get_feeds():
        if feed.id == feed_id:
            return feed
    return None


def _parse_color(value) -> int:
    if isinstance(value, int):
        return value
    return int(str(value), 0)
