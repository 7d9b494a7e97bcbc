"""Mapping of accepted feed items onto the platform's article record."""

import logging
import re
from datetime import datetime

from peoples_thread.config import settings
from peoples_thread.models import ArticleCandidate, Category, FeedItem, utc_now

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_TAGS = 5

# Checked in order; anything unmatched is filed under politics.
CATEGORY_KEYWORDS: dict[Category, list[str]] = {
    Category.LABOR: [
        "labor", "union", "workers", "worker", "strike", "wages", "minimum wage",
        "employment", "unemployment", "layoffs", "collective bargaining",
    ],
    Category.SOCIAL_JUSTICE: [
        "housing", "inequality", "poverty", "welfare", "immigration", "refugee",
        "deportation", "police", "criminal justice", "prison", "civil rights",
        "racism", "discrimination", "healthcare", "medicaid", "homelessness",
    ],
}  # fmt: skip


def slugify(title: str, max_length: int | None = None) -> str:
    """Derive a URL slug from a title.

    Lowercases, collapses every run of non-alphanumeric characters into a
    single ``-`` and truncates to ``max_length``. The same title always
    yields the same slug.
    """
    limit = max_length or settings.slug_max_length
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    slug = slug[:limit].strip("-")
    return slug or "article"


def truncate_text(text: str, max_length: int) -> str:
    """Shorten text to ``max_length`` characters on a word boundary."""
    if len(text) <= max_length:
        return text
    cut = text[: max_length - 3]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:.-") + "..."


class ArticleSynthesizer:
    """Build article candidates from relevant, non-duplicate feed items."""

    def __init__(
        self,
        slug_max_length: int | None = None,
        summary_max_length: int | None = None,
        author: str | None = None,
        category_keywords: dict[Category, list[str]] | None = None,
    ):
        self.slug_max_length = slug_max_length or settings.slug_max_length
        self.summary_max_length = summary_max_length or settings.summary_max_length
        self.author = author or settings.default_author
        keyword_map = category_keywords if category_keywords is not None else CATEGORY_KEYWORDS
        self._category_patterns = {
            category: [
                (keyword, re.compile(r"\b" + re.escape(keyword) + r"s?\b", re.IGNORECASE))
                for keyword in keywords
            ]
            for category, keywords in keyword_map.items()
        }

    def categorize(self, item: FeedItem) -> tuple[Category, list[str]]:
        """Pick a category and tags from the item's text."""
        text = item.searchable_text
        for category, patterns in self._category_patterns.items():
            matched = [keyword for keyword, pattern in patterns if pattern.search(text)]
            if matched:
                return category, matched[:MAX_TAGS]
        return Category.POLITICS, []

    def synthesize(self, item: FeedItem, now: datetime | None = None) -> ArticleCandidate:
        """Create an unpublished article candidate from a feed item.

        Args:
            item: Feed item that passed relevance and duplicate checks
            now: Ingestion time, used when the feed carries no date

        Returns:
            ArticleCandidate with ``published`` left False
        """
        summary = item.summary or truncate_text(item.body, self.summary_max_length) or item.title
        category, tags = self.categorize(item)

        return ArticleCandidate(
            slug=slugify(item.title, max_length=self.slug_max_length),
            title=item.title[:MAX_TITLE_LENGTH],
            summary=truncate_text(summary, self.summary_max_length),
            body=item.body or summary,
            published_date=item.published_at or now or utc_now(),
            source_url=item.link,
            source_title=item.title,
            category=category,
            tags=tags,
            author=self.author,
        )
