"""Database operations for article storage."""

import json
import math
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Dict, List, Optional
from pathlib import Path

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import structlog

from .interfaces import Article, ArticlePage, LogEntry, NewArticle, StorageInterface
from .models import ArticleModel, LogEntryModel, init_db, utcnow
from ..config.settings import settings
from ..errors import PersistenceError

logger = structlog.get_logger()


class ArticleStorage(StorageInterface):
    """SQLAlchemy-backed storage for articles and log entries."""

    def __init__(self, database_url: str = None):
        if database_url is None:
            database_url = settings.database_url

        # Ensure data directory exists
        if database_url.startswith("sqlite:///"):
            db_path = database_url.replace("sqlite:///", "")
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.engine = init_db(database_url)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def _session(self):
        """Session scope translating backend failures into PersistenceError."""
        session = self.Session()
        try:
            yield session
        except IntegrityError as e:
            session.rollback()
            raise PersistenceError(f"integrity violation: {e.orig}") from e
        except SQLAlchemyError as e:
            session.rollback()
            raise PersistenceError(str(e)) from e
        finally:
            session.close()

    def get_by_url(self, url: str) -> Optional[Article]:
        """Get article by URL."""
        with self._session() as session:
            model = session.query(ArticleModel)\
                .filter(ArticleModel.url == url)\
                .first()
            return self._model_to_article(model) if model else None

    def get_article(self, article_id: int) -> Optional[Article]:
        """Get article by ID."""
        with self._session() as session:
            model = session.get(ArticleModel, article_id)
            return self._model_to_article(model) if model else None

    def save_article(self, article: NewArticle) -> int:
        """Save article and return its ID.

        A URL that is already stored raises PersistenceError.
        """
        with self._session() as session:
            model = ArticleModel(
                title=article.title,
                url=article.url,
                published_date=article.published_date,
                feed_source=article.feed_source,
                original_content=article.original_content,
                summary=article.summary,
                date_was_fallback=article.date_was_fallback,
            )
            session.add(model)
            session.commit()
            logger.debug("article_saved", id=model.id, url=article.url[:80])
            return model.id

    def update_summary(self, article_id: int, summary: str) -> None:
        """Backfill the summary of a stored article."""
        with self._session() as session:
            model = session.get(ArticleModel, article_id)
            if model is None:
                raise PersistenceError(f"article {article_id} not found")
            model.summary = summary
            model.updated_at = utcnow()
            session.commit()
            logger.debug("article_summary_updated", id=article_id)

    def get_articles(self, source: str = None, page: int = 1, limit: int = 20) -> ArticlePage:
        """Get one page of articles, newest first, optionally for one source."""
        page = max(page, 1)
        with self._session() as session:
            query = session.query(ArticleModel)
            if source and source != "all":
                query = query.filter(ArticleModel.feed_source == source)

            total = query.count()
            models = query\
                .order_by(ArticleModel.published_date.desc(), ArticleModel.id.desc())\
                .offset((page - 1) * limit)\
                .limit(limit)\
                .all()

            return ArticlePage(
                data=[self._model_to_article(m) for m in models],
                total=total,
                page=page,
                limit=limit,
                total_pages=math.ceil(total / limit) if limit else 0,
            )

    def get_articles_missing_summary(self, limit: int = 50) -> List[Article]:
        """Get stored articles that never received a summary."""
        with self._session() as session:
            models = session.query(ArticleModel)\
                .filter(ArticleModel.summary.is_(None))\
                .order_by(ArticleModel.published_date.desc())\
                .limit(limit)\
                .all()
            return [self._model_to_article(m) for m in models]

    def count(self) -> int:
        """Total number of stored articles."""
        with self._session() as session:
            return session.query(func.count(ArticleModel.id)).scalar() or 0

    def delete_old_articles(self, days_to_keep: int = 365) -> int:
        """Delete articles created before the retention window."""
        cutoff = utcnow() - timedelta(days=days_to_keep)
        with self._session() as session:
            deleted = session.query(ArticleModel)\
                .filter(ArticleModel.created_at < cutoff)\
                .delete(synchronize_session=False)
            session.commit()
            logger.info("old_articles_deleted", count=deleted, days_to_keep=days_to_keep)
            return deleted

    def add_log(self, level: str, message: str, context: Dict[str, Any] = None) -> None:
        """Persist one log line."""
        with self._session() as session:
            session.add(LogEntryModel(
                level=level,
                message=message,
                context=json.dumps(context, default=str) if context else None,
            ))
            session.commit()

    def get_logs(self, page: int = 1, limit: int = 10, level: str = None) -> List[LogEntry]:
        """Get persisted log lines, newest first."""
        page = max(page, 1)
        with self._session() as session:
            query = session.query(LogEntryModel)
            if level:
                query = query.filter(LogEntryModel.level == level)
            models = query\
                .order_by(LogEntryModel.created_at.desc(), LogEntryModel.id.desc())\
                .offset((page - 1) * limit)\
                .limit(limit)\
                .all()
            return [
                LogEntry(
                    id=m.id,
                    level=m.level,
                    message=m.message,
                    context=json.loads(m.context) if m.context else {},
                    created_at=m.created_at,
                )
                for m in models
            ]

    def _model_to_article(self, model: ArticleModel) -> Article:
        """Convert database model to Article."""
        return Article(
            id=model.id,
            title=model.title,
            url=model.url,
            published_date=model.published_date,
            feed_source=model.feed_source,
            original_content=model.original_content,
            summary=model.summary,
            date_was_fallback=bool(model.date_was_fallback),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
