"""Settings and the feed source registry."""

from .settings import Settings, settings
from .feeds import load_feeds, get_feeds, get_feed_by_id

__all__ = ["Settings", "settings", "load_feeds", "get_feeds", "get_feed_by_id"]
