"""Interface definitions for article storage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class NewArticle:
    """Data needed to persist a freshly ingested article."""
    title: str
    url: str
    published_date: str
    feed_source: str
    original_content: str = ""
    summary: Optional[str] = None
    date_was_fallback: bool = False


@dataclass
class Article:
    """A persisted article."""
    id: int
    title: str
    url: str
    published_date: str
    feed_source: str
    original_content: Optional[str] = None
    summary: Optional[str] = None
    date_was_fallback: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "published_date": self.published_date,
            "feed_source": self.feed_source,
            "original_content": self.original_content,
            "summary": self.summary,
            "date_was_fallback": self.date_was_fallback,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class ArticlePage:
    """One page of articles plus pagination totals."""
    data: List[Article]
    total: int
    page: int
    limit: int
    total_pages: int

    def to_dict(self) -> dict:
        return {
            "data": [a.to_dict() for a in self.data],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
        }


@dataclass
class LogEntry:
    """A persisted log line."""
    level: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "level": self.level,
            "message": self.message,
            "context": self.context,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class StorageInterface:
    """Interface for article storage.

    Implementations raise PersistenceError for any backend failure.
    """

    def get_by_url(self, url: str) -> Optional[Article]:
        """Get article by URL."""
        raise NotImplementedError

    def save_article(self, article: NewArticle) -> int:
        """Save article, return its ID."""
        raise NotImplementedError

    def get_article(self, article_id: int) -> Optional[Article]:
        """Get article by ID."""
        raise NotImplementedError

    def update_summary(self, article_id: int, summary: str) -> None:
        """Backfill the summary of a stored article."""
        raise NotImplementedError
