"""Pytest configuration and shared fixtures."""

import os

# Must be set before settings are first imported: disables retry backoff
os.environ.setdefault("FD_ENVIRONMENT", "test")

import pytest
import tempfile

# Add project root to path
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from feed_digest.ingestion.interfaces import FeedDefinition, FeedFormat, FeedItem, FetcherInterface


RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>AWS What's New</title>
    <link>https://aws.amazon.com/new/</link>
    <item>
      <title>AWS announces new feature</title>
      <link>https://aws.amazon.com/x</link>
      <pubDate>Mon, 01 Jan 2024 10:00:00 GMT</pubDate>
      <description>A new feature is now generally available.</description>
    </item>
    <item>
      <title>Amazon S3 adds another storage class</title>
      <link>https://aws.amazon.com/y</link>
      <pubDate>Tue, 02 Jan 2024 08:30:00 +0000</pubDate>
      <description><![CDATA[<p>Cheaper <b>cold</b> storage.</p>]]></description>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Martin Fowler</title>
  <link href="https://martinfowler.com/feed.atom" rel="self"/>
  <updated>2024-01-03T12:00:00Z</updated>
  <entry>
    <title>Refactoring with tidy steps</title>
    <link href="https://martinfowler.com/articles/tidy.html" rel="alternate"/>
    <link href="https://martinfowler.com/feed.atom" rel="self"/>
    <updated>2024-01-03T12:00:00Z</updated>
    <published>2024-01-01T09:00:00Z</published>
    <content type="html">Small structural changes before behavioural ones.</content>
  </entry>
  <entry>
    <title>Bliki: Strangler Fig</title>
    <link href="https://martinfowler.com/bliki/StranglerFig.html"/>
    <published>2024-01-02T09:00:00+01:00</published>
    <summary>Gradually replacing a legacy system.</summary>
  </entry>
</feed>
"""


@pytest.fixture
def temp_db():
    """Provide a temporary database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield f"sqlite:///{db_path}"
    # Cleanup
    try:
        os.unlink(db_path)
    except FileNotFoundError:
        pass


@pytest.fixture
def storage(temp_db):
    """ArticleStorage on a temporary database."""
    from feed_digest.storage.database import ArticleStorage
    return ArticleStorage(temp_db)


@pytest.fixture
def rss_text():
    return RSS_FEED


@pytest.fixture
def atom_text():
    return ATOM_FEED


@pytest.fixture
def aws_feed():
    """Provide an RSS feed definition."""
    return FeedDefinition(
        id="aws",
        url="https://aws.amazon.com/about-aws/whats-new/recent/feed/",
        format=FeedFormat.RSS,
        display_name="AWS News",
        color=0x3498DB,
    )


@pytest.fixture
def fowler_feed():
    """Provide an Atom feed definition."""
    return FeedDefinition(
        id="martinfowler",
        url="https://martinfowler.com/feed.atom",
        format=FeedFormat.ATOM,
        display_name="Martin Fowler",
        color=0x2ECC71,
    )


@pytest.fixture
def sample_item():
    """Provide a parsed FeedItem."""
    return FeedItem(
        title="AWS announces new feature",
        url="https://aws.amazon.com/x",
        published_date="2024-01-01T10:00:00.000Z",
        content="A new feature is now generally available.",
    )


class StaticFetcher(FetcherInterface):
    """Fetcher returning canned items per source id."""

    def __init__(self, items_by_source):
        self.items_by_source = items_by_source
        self.calls = 0

    async def fetch_all(self, sources):
        self.calls += 1
        return {s.id: list(self.items_by_source.get(s.id, [])) for s in sources}


@pytest.fixture
def static_fetcher():
    return StaticFetcher
