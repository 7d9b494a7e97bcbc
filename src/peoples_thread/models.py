"""Data models for feed items, article candidates and ingestion results."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class Category(str, Enum):
    """Article categories accepted by the store."""

    POLITICS = "politics"
    SOCIAL_JUSTICE = "social-justice"
    LABOR = "labor"


class FeedItem(BaseModel):
    """Normalized item as parsed from the upstream feed.

    ``link`` is the external identity of the story: two items with the same
    link are the same story even if title or date changed between fetches.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    link: str = Field(min_length=1)
    summary: str = ""
    published_at: datetime | None = None
    body: str = ""

    @field_validator("title", "link", "summary", "body", mode="before")
    @classmethod
    def clean_text(cls, v: Any) -> Any:
        """Clean up text fields."""
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @property
    def searchable_text(self) -> str:
        """Title, summary and body joined for keyword matching."""
        return " ".join(part for part in (self.title, self.summary, self.body) if part)


class ArticleCandidate(BaseModel):
    """Article record ready to be persisted."""

    model_config = ConfigDict(frozen=True)

    slug: str = Field(min_length=1)
    title: str = Field(max_length=200)
    summary: str
    body: str
    published_date: datetime
    source_url: str
    source_title: str = ""
    category: Category = Category.POLITICS
    tags: list[str] = Field(default_factory=list)
    author: str = "Peoples Thread Editorial"
    published: bool = False
    ai_generated: bool = False


class PreviewItem(BaseModel):
    """Display-safe shape of a relevant feed item for human review."""

    title: str
    url: str
    summary: str
    published_date: datetime
    content_length: int

    @classmethod
    def from_feed_item(cls, item: FeedItem, now: datetime | None = None) -> "PreviewItem":
        """Create a PreviewItem from a FeedItem."""
        return cls(
            title=item.title,
            url=item.link,
            summary=item.summary or item.title,
            published_date=item.published_at or now or utc_now(),
            content_length=len(item.body),
        )


class CorpusEntry(BaseModel):
    """Identity fields of an article already in the store."""

    source_url: str | None = None
    slug: str


class StoredArticle(BaseModel):
    """Article as read back from the store."""

    slug: str
    title: str
    summary: str
    body: str
    category: Category
    tags: list[str] = Field(default_factory=list)
    author: str
    source_url: str | None = None
    source_title: str | None = None
    published: bool
    published_at: datetime | None = None
    created_at: datetime
    views: int = 0


class IngestionResult(BaseModel):
    """Outcome of a single preview or commit run.

    ``success`` only reflects whether the feed could be fetched and parsed;
    item-level failures land in ``errors`` without flipping it.
    """

    success: bool = True
    articles_processed: int = 0
    articles_created: int = 0
    duplicates_skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    dry_run: bool = False
    items: list[PreviewItem] = Field(default_factory=list)
    created_slugs: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utc_now)
    duration_seconds: float = 0.0

    @property
    def message(self) -> str:
        """Human readable one-line summary."""
        if self.dry_run:
            if not self.success:
                return "Failed to fetch feed articles for preview"
            return f"Found {self.articles_processed} relevant feed articles"
        outcome = "completed successfully" if self.success else "completed with errors"
        return (
            f"Feed ingestion {outcome}. "
            f"Created {self.articles_created}/{self.articles_processed} articles."
        )
