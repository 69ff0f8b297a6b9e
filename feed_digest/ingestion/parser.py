"""Format-agnostic RSS / Atom parsing on top of feedparser.

The parser is tolerant at the item level: a malformed entry becomes a FeedItem
with empty-string fields instead of being dropped, so a feed with N items
always yields N FeedItems. feedparser recovers what it can from broken markup
(unescaped ampersands, HTML entities, unclosed tags); only a document it cannot
identify as RSS or Atom, or one in the wrong dialect, raises ParseError.
"""

import io
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional, Tuple, Union

import feedparser
import structlog
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .interfaces import FeedFormat, FeedItem
from ..errors import ParseError

logger = structlog.get_logger()

XHTML_TYPE = "application/xhtml+xml"


# Entry link variants. An entry carries no link, a bare URL with no link
# metadata (a permalink guid), exactly one link, or several.
@dataclass(frozen=True)
class TextLink:
    href: str


@dataclass(frozen=True)
class LinkRef:
    href: str
    rel: str = "alternate"  # RFC 4287: missing rel means alternate


@dataclass(frozen=True)
class LinkSet:
    links: Tuple[LinkRef, ...]


AtomLink = Union[TextLink, LinkRef, LinkSet]


def detect_format(text: str) -> FeedFormat:
    """Classify a payload as Atom or RSS.

    Heuristic only: Atom when both a feed root marker and an entry marker
    appear anywhere in the text, RSS otherwise.
    """
    lowered = text.lower()
    if "<feed" in lowered and "<entry" in lowered:
        return FeedFormat.ATOM
    return FeedFormat.RSS


def parse_feed(text: str, fmt: FeedFormat = FeedFormat.AUTO) -> List[FeedItem]:
    """Parse raw feed text into FeedItems."""
    if not text or not text.strip():
        raise ParseError("empty feed document", fragment="")

    cleaned = text.lstrip("\ufeff \t\r\n")
    if fmt == FeedFormat.AUTO:
        fmt = detect_format(cleaned)

    # A stream keeps feedparser from treating the text as a URL or filename
    parsed = feedparser.parse(io.BytesIO(cleaned.encode("utf-8")))
    version = parsed.get("version", "")

    if not version:
        raise ParseError("feed document is not RSS or Atom", fragment=_fragment(cleaned))
    if fmt == FeedFormat.ATOM and not version.startswith("atom"):
        raise ParseError("missing <feed> root element", fragment=_root_name(version))
    if fmt == FeedFormat.RSS and version.startswith("atom"):
        raise ParseError("missing <rss> root element", fragment=_root_name(version))
    if fmt == FeedFormat.RSS and not parsed.feed and not parsed.entries:
        raise ParseError("missing <channel> element", fragment=_root_name(version))

    if parsed.bozo:
        logger.debug(
            "feed_parse_recovered",
            version=version,
            error=str(parsed.get("bozo_exception", "")),
        )

    if fmt == FeedFormat.ATOM:
        return [_atom_entry(entry) for entry in parsed.entries]
    return [_rss_item(entry) for entry in parsed.entries]


def normalize_date(value: Optional[str], now: Optional[datetime] = None) -> Tuple[str, bool]:
    """Normalize an RFC-2822 or ISO-8601 date to ISO-8601 UTC.

    Returns (iso_string, was_fallback). Missing or unparseable input is
    replaced by the current time and flagged.
    """
    parsed = _parse_date(value) if value else None
    if parsed is None:
        return format_timestamp(now or datetime.now(timezone.utc)), True
    return format_timestamp(parsed), False


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as YYYY-MM-DDTHH:MM:SS.mmmZ."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    # Year is always four digits (0500-01-01...)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_link(link: Optional[AtomLink]) -> str:
    """Pick the canonical URL out of an Atom link variant."""
    if link is None:
        return ""
    if isinstance(link, TextLink):
        return link.href
    if isinstance(link, LinkRef):
        return link.href
    if isinstance(link, LinkSet):
        for ref in link.links:
            if ref.rel == "alternate" and ref.href:
                return ref.href
        return link.links[0].href if link.links else ""
    raise TypeError(f"unknown link variant: {type(link).__name__}")


def _parse_date(value: str) -> Optional[datetime]:
    value = value.strip()
    if not value:
        return None

    # RFC-2822 first (RSS pubDate), then anything dateutil understands
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        pass

    try:
        parsed = date_parser.parse(value)
        # Overflow surfaces lazily on astimezone for extreme years
        format_timestamp(parsed)
        return parsed
    except (ValueError, OverflowError):
        return None


def _rss_item(entry) -> FeedItem:
    # feedparser maps pubDate to published and dc:date to updated
    published, fallback = normalize_date(entry.get("published") or entry.get("updated"))

    # description lands in summary; content:encoded is only a fallback
    content = entry.get("summary") or _first_content(entry)

    return FeedItem(
        title=_clean(entry.get("title")),
        url=resolve_link(_read_link(entry)),
        published_date=published,
        content=_clean(content),
        date_was_fallback=fallback,
    )


def _atom_entry(entry) -> FeedItem:
    content = _first_content(entry)
    if not content:
        content = entry.get("summary", "")

    published, fallback = normalize_date(entry.get("updated") or entry.get("published"))

    return FeedItem(
        title=_clean(entry.get("title")),
        url=resolve_link(_read_link(entry)),
        published_date=published,
        content=_clean(content),
        date_was_fallback=fallback,
    )


def _first_content(entry) -> str:
    blocks = entry.get("content") or []
    if not blocks:
        return ""
    block = blocks[0]
    value = block.get("value", "")
    if block.get("type") == XHTML_TYPE:
        # Inline xhtml is flattened to its text
        return BeautifulSoup(value, "html.parser").get_text()
    return value


def _read_link(entry) -> Optional[AtomLink]:
    refs = [
        LinkRef(href=link["href"].strip(), rel=link.get("rel", "alternate"))
        for link in entry.get("links", [])
        if link.get("href")
    ]
    if not refs:
        # A permalink guid is exposed as link without a links entry
        link = entry.get("link")
        return TextLink(href=link.strip()) if link else None
    if len(refs) == 1:
        return refs[0]
    return LinkSet(links=tuple(refs))


def _root_name(version: str) -> str:
    if version.startswith("atom"):
        return "<feed>"
    if version in ("rss090", "rss10"):
        return "<rdf:RDF>"
    return "<rss>"


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _fragment(text: str, limit: int = 80) -> str:
    head = text[:limit].replace("\n", " ")
    return head + ("..." if len(text) > limit else "")
