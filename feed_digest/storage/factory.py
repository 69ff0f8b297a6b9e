"""Factory functions to create storage instances.

The database URL is read from DATABASE_URL (the convention on most cloud
platforms), then FD_DATABASE_URL, then the settings default (local SQLite).
Any SQLAlchemy URL works; PostgreSQL needs the `postgres` extra installed.
"""

import os
from functools import lru_cache

import structlog

logger = structlog.get_logger()


def get_database_url() -> str:
    """Get database URL from environment, with fallback to SQLite."""
    url = os.environ.get('DATABASE_URL') or os.environ.get('FD_DATABASE_URL')
    if url:
        # SQLAlchemy only accepts the postgresql:// scheme
        if url.startswith('postgres://'):
            url = 'postgresql://' + url[len('postgres://'):]
        return url

    from ..config.settings import settings
    return settings.database_url


def is_postgres() -> bool:
    """Check if we're using PostgreSQL."""
    return get_database_url().startswith('postgresql')


@lru_cache(maxsize=1)
def get_article_storage():
    """Get the process-wide article storage instance."""
    from .database import ArticleStorage

    url = get_database_url()
    logger.info("using_storage", backend="postgres" if is_postgres() else "sqlite", url=url[:40] + "...")
    return ArticleStorage(url)


def clear_cache():
    """Clear cached instances (useful for testing)."""
    get_article_storage.cache_clear()
