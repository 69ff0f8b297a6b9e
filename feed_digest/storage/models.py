"""SQLAlchemy models for the feed-digest database."""

from datetime import datetime, timezone

from sqlalchemy import create_engine, Column, Integer, String, Text, Boolean, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ArticleModel(Base):
    """Database model for ingested articles."""
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Dedup key: no two articles share a URL
    url = Column(String(2048), unique=True, nullable=False)

    title = Column(Text, nullable=False, default="")
    feed_source = Column(String(255), nullable=False)

    # ISO-8601 UTC string as produced by the parser
    published_date = Column(String(32), nullable=False)
    date_was_fallback = Column(Boolean, default=False)

    original_content = Column(Text)
    summary = Column(Text)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('idx_articles_source', 'feed_source'),
        Index('idx_articles_published', 'published_date'),
        Index('idx_articles_created', 'created_at'),
    )


class LogEntryModel(Base):
    """Database model for persisted operational log lines."""
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    level = Column(String(16), nullable=False)
    message = Column(Text, nullable=False)
    context = Column(Text)  # JSON object
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index('idx_logs_level', 'level'),
        Index('idx_logs_created', 'created_at'),
    )


def init_db(database_url: str):
    """Initialize database and create all tables."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return engine

