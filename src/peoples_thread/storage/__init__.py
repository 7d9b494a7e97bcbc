"""Article storage."""

from peoples_thread.storage.database import ArticleDatabase, ArticleStore

__all__ = ["ArticleDatabase", "ArticleStore"]
