"""Database storage and models."""

from .interfaces import Article, ArticlePage, LogEntry, NewArticle, StorageInterface
from .database import ArticleStorage
from .models import ArticleModel, LogEntryModel, init_db

__all__ = [
    "Article", "ArticlePage", "LogEntry", "NewArticle", "StorageInterface",
    "ArticleStorage", "ArticleModel", "LogEntryModel", "init_db"
]
