"""SQLite article store used by the ingestion pipeline."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, Protocol

from peoples_thread.config import settings
from peoples_thread.exceptions import ItemPersistError
from peoples_thread.models import (
    ArticleCandidate,
    Category,
    CorpusEntry,
    IngestionResult,
    StoredArticle,
    utc_now,
)

logger = logging.getLogger(__name__)


class ArticleStore(Protocol):
    """Operations the pipeline needs from the article store."""

    def get_corpus(self) -> list[CorpusEntry]:
        """Return source URL and slug of every stored article."""
        ...

    def create_article(self, candidate: ArticleCandidate) -> str:
        """Write a new article and return its slug.

        Raises:
            ItemPersistError: The article could not be written
        """
        ...

    def record_run(self, result: IngestionResult) -> None:
        """Keep a record of a finished commit run."""
        ...


class ArticleDatabase:
    """SQLite database for article storage and search."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or settings.db_path
        self._ensure_directory()
        self._init_db()

    def _ensure_directory(self) -> None:
        """Ensure database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS articles (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    slug TEXT NOT NULL UNIQUE,
                    title TEXT NOT NULL,
                    summary TEXT NOT NULL,
                    body TEXT NOT NULL,
                    category TEXT NOT NULL,
                    tags TEXT NOT NULL DEFAULT '[]',
                    author TEXT NOT NULL,
                    source_url TEXT,
                    source_title TEXT,
                    published BOOLEAN NOT NULL DEFAULT FALSE,
                    ai_generated BOOLEAN NOT NULL DEFAULT FALSE,
                    published_at TIMESTAMP,
                    created_at TIMESTAMP NOT NULL,
                    views INTEGER NOT NULL DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_articles_source_url
                ON articles(source_url)
            """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_articles_category_published
                ON articles(category, published, published_at DESC)
            """)

            # FTS5 for full-text search
            cursor.execute("""
                CREATE VIRTUAL TABLE IF NOT EXISTS articles_fts USING fts5(
                    title,
                    summary,
                    content='articles',
                    content_rowid='id'
                )
            """)

            cursor.execute("""
                CREATE TRIGGER IF NOT EXISTS articles_ai AFTER INSERT ON articles BEGIN
                    INSERT INTO articles_fts(rowid, title, summary)
                    VALUES (new.id, new.title, new.summary);
                END
            """)

            cursor.execute("""
                CREATE TRIGGER IF NOT EXISTS articles_ad AFTER DELETE ON articles BEGIN
                    INSERT INTO articles_fts(articles_fts, rowid, title, summary)
                    VALUES('delete', old.id, old.title, old.summary);
                END
            """)

            cursor.execute("""
                CREATE TRIGGER IF NOT EXISTS articles_au AFTER UPDATE ON articles BEGIN
                    INSERT INTO articles_fts(articles_fts, rowid, title, summary)
                    VALUES('delete', old.id, old.title, old.summary);
                    INSERT INTO articles_fts(rowid, title, summary)
                    VALUES (new.id, new.title, new.summary);
                END
            """)

            # Ingestion runs for monitoring
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS ingestion_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_date TIMESTAMP NOT NULL,
                    success BOOLEAN NOT NULL,
                    articles_processed INTEGER,
                    articles_created INTEGER,
                    duplicates_skipped INTEGER,
                    errors TEXT,
                    duration_seconds REAL
                )
            """)

            conn.commit()
            logger.info(f"Database initialized at {self.db_path}")

    def get_corpus(self) -> list[CorpusEntry]:
        """Return source URL and slug of every stored article."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT source_url, slug FROM articles").fetchall()
        return [CorpusEntry(source_url=row["source_url"], slug=row["slug"]) for row in rows]

    def create_article(self, candidate: ArticleCandidate) -> str:
        """Insert a new article.

        Args:
            candidate: Article to write

        Returns:
            Slug of the stored article

        Raises:
            ItemPersistError: Slug collision or database failure
        """
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO articles
                    (slug, title, summary, body, category, tags, author, source_url,
                     source_title, published, ai_generated, published_at, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        candidate.slug,
                        candidate.title,
                        candidate.summary,
                        candidate.body,
                        candidate.category.value,
                        json.dumps(candidate.tags),
                        candidate.author,
                        candidate.source_url,
                        candidate.source_title,
                        candidate.published,
                        candidate.ai_generated,
                        candidate.published_date.isoformat(),
                        utc_now().isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise ItemPersistError(
                f"Article with slug '{candidate.slug}' already exists", slug=candidate.slug
            ) from e
        except sqlite3.Error as e:
            raise ItemPersistError(f"Database error: {e}", slug=candidate.slug) from e

        logger.info(f"Saved article '{candidate.slug}'")
        return candidate.slug

    def record_run(self, result: IngestionResult) -> None:
        """Save ingestion run statistics."""
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO ingestion_runs
                (run_date, success, articles_processed, articles_created,
                 duplicates_skipped, errors, duration_seconds)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    result.started_at.isoformat(),
                    result.success,
                    result.articles_processed,
                    result.articles_created,
                    result.duplicates_skipped,
                    json.dumps(result.errors),
                    result.duration_seconds,
                ),
            )
            conn.commit()

    def count_articles(self) -> int:
        """Total number of stored articles."""
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM articles").fetchone()[0]

    def get_article(self, slug: str) -> StoredArticle | None:
        """Get a single article by slug."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM articles WHERE slug = ?", (slug,)).fetchone()
        return self._row_to_article(row) if row else None

    def find_by_source_urls(self, urls: list[str]) -> dict[str, StoredArticle]:
        """Map each given source URL that already has an article to that article."""
        if not urls:
            return {}
        placeholders = ", ".join("?" for _ in urls)
        with self._get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM articles WHERE source_url IN ({placeholders})", urls
            ).fetchall()
        return {row["source_url"]: self._row_to_article(row) for row in rows}

    def get_recent_articles(self, days: int = 7, limit: int = 100) -> list[StoredArticle]:
        """Get recently created articles, newest first."""
        since = utc_now() - timedelta(days=days)

        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM articles
                WHERE created_at > ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (since.isoformat(), limit),
            ).fetchall()

        return [self._row_to_article(row) for row in rows]

    def search_articles(
        self,
        query: str,
        category: str | None = None,
        limit: int = 20,
    ) -> list[StoredArticle]:
        """Search articles using full-text search.

        Args:
            query: Search query string
            category: Filter by category
            limit: Maximum results

        Returns:
            List of matching articles
        """
        base_query = """
            SELECT a.* FROM articles a
            JOIN articles_fts fts ON a.id = fts.rowid
            WHERE articles_fts MATCH ?
        """
        params: list = [query]

        if category:
            base_query += " AND a.category = ?"
            params.append(category)

        base_query += " ORDER BY a.created_at DESC LIMIT ?"
        params.append(limit)

        with self._get_connection() as conn:
            rows = conn.execute(base_query, params).fetchall()

        return [self._row_to_article(row) for row in rows]

    def get_stats(self, days: int = 30) -> dict:
        """Get article and ingestion statistics."""
        since = (utc_now() - timedelta(days=days)).isoformat()

        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("SELECT COUNT(*) FROM articles WHERE created_at > ?", (since,))
            total_articles = cursor.fetchone()[0]

            cursor.execute(
                """
                SELECT category, COUNT(*) as count
                FROM articles WHERE created_at > ?
                GROUP BY category
                ORDER BY count DESC
                """,
                (since,),
            )
            by_category = {row["category"]: row["count"] for row in cursor.fetchall()}

            cursor.execute(
                """
                SELECT COUNT(*) AS runs,
                       COALESCE(SUM(CASE WHEN success THEN 0 ELSE 1 END), 0) AS failed
                FROM ingestion_runs WHERE run_date > ?
                """,
                (since,),
            )
            runs = cursor.fetchone()

            return {
                "total_articles": total_articles,
                "articles_by_category": by_category,
                "ingestion_runs": runs["runs"],
                "failed_runs": runs["failed"],
                "period_days": days,
            }

    def _row_to_article(self, row: sqlite3.Row) -> StoredArticle:
        """Convert database row to StoredArticle."""
        return StoredArticle(
            slug=row["slug"],
            title=row["title"],
            summary=row["summary"],
            body=row["body"],
            category=Category(row["category"]),
            tags=json.loads(row["tags"] or "[]"),
            author=row["author"],
            source_url=row["source_url"],
            source_title=row["source_title"],
            published=bool(row["published"]),
            published_at=datetime.fromisoformat(row["published_at"])
            if row["published_at"]
            else None,
            created_at=datetime.fromisoformat(row["created_at"]),
            views=row["views"],
        )
