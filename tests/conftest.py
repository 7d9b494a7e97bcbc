"""Pytest fixtures for tests."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from peoples_thread.collectors.base import BaseFetcher
from peoples_thread.exceptions import ItemPersistError
from peoples_thread.models import ArticleCandidate, CorpusEntry, FeedItem, IngestionResult
from peoples_thread.processing import KeywordRelevanceFilter

RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>PBS NewsHour - Headlines</title>
    <link>https://www.pbs.org/newshour</link>
    <description>Latest headlines</description>
    {items}
  </channel>
</rss>
"""


def build_rss(items: list[dict]) -> str:
    """Render a small RSS 2.0 document from item dicts."""
    rendered = []
    for item in items:
        parts = [f"<title><![CDATA[{item['title']}]]></title>"]
        if "link" in item:
            parts.append(f"<link>{item['link']}</link>")
        if "description" in item:
            parts.append(f"<description><![CDATA[{item['description']}]]></description>")
        if "pubDate" in item:
            parts.append(f"<pubDate>{item['pubDate']}</pubDate>")
        if "content" in item:
            parts.append(f"<content:encoded><![CDATA[{item['content']}]]></content:encoded>")
        rendered.append("<item>" + "".join(parts) + "</item>")
    return RSS_TEMPLATE.format(items="\n    ".join(rendered))


class StaticFetcher(BaseFetcher):
    """Fetcher returning a fixed document or raising a fixed error."""

    def __init__(self, document: str = "", error: Exception | None = None):
        self.document = document
        self.error = error
        self.calls = 0

    async def fetch(self, feed_url: str | None = None) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.document

    async def health_check(self, feed_url: str | None = None) -> bool:
        return self.error is None


class MemoryStore:
    """In-memory article store recording every call."""

    def __init__(self, fail_slugs: set[str] | None = None):
        self.articles: dict[str, ArticleCandidate] = {}
        self.fail_slugs = fail_slugs or set()
        self.corpus_loads = 0
        self.attempts: list[str] = []
        self.runs: list[IngestionResult] = []

    def get_corpus(self) -> list[CorpusEntry]:
        self.corpus_loads += 1
        return [
            CorpusEntry(source_url=a.source_url, slug=a.slug) for a in self.articles.values()
        ]

    def create_article(self, candidate: ArticleCandidate) -> str:
        self.attempts.append(candidate.slug)
        if candidate.slug in self.fail_slugs:
            raise ItemPersistError("store unavailable", slug=candidate.slug)
        if candidate.slug in self.articles:
            raise ItemPersistError("slug already exists", slug=candidate.slug)
        self.articles[candidate.slug] = candidate
        return candidate.slug

    def record_run(self, result: IngestionResult) -> None:
        self.runs.append(result)


@pytest.fixture
def focus_filter() -> KeywordRelevanceFilter:
    """Relevance filter with a small, fixed keyword list."""
    return KeywordRelevanceFilter(["union", "strike", "wages", "minimum wage", "housing"])


@pytest.fixture
def sample_feed_item() -> FeedItem:
    """Create a sample feed item."""
    return FeedItem(
        title="Nurses union votes to strike over staffing",
        link="https://www.pbs.org/newshour/nation/nurses-union-strike",
        summary="Hospital nurses authorized a strike on Monday.",
        published_at=datetime(2025, 10, 14, 22, 0, tzinfo=timezone.utc),
        body="Hospital nurses authorized a strike on Monday after months of talks.",
    )


@pytest.fixture
def sample_feed() -> str:
    """Feed with two relevant items and one off-topic item."""
    return build_rss(
        [
            {
                "title": "Nurses union votes to strike over staffing",
                "link": "https://www.pbs.org/newshour/nation/nurses-union-strike",
                "description": "<p>Hospital nurses authorized a strike.</p>",
                "pubDate": "Tue, 14 Oct 2025 18:00:00 -0400",
            },
            {
                "title": "New species of frog found in Peru",
                "link": "https://www.pbs.org/newshour/science/frog",
                "description": "Biologists describe a tiny frog.",
            },
            {
                "title": "City council debates zoning",
                "link": "https://www.pbs.org/newshour/politics/zoning",
                "description": "Members argued over the plan.",
                "content": "<p>The plan would add affordable housing near transit.</p>",
            },
        ]
    )


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test_articles.db"


class ManualTimer:
    """Timer that only fires when the test says so."""

    def __init__(self):
        self.callback = None
        self.interval = None
        self.starts = 0
        self.cancels = 0

    @property
    def is_running(self) -> bool:
        return self.callback is not None

    def start(self, callback, interval: float) -> None:
        self.starts += 1
        self.callback = callback
        self.interval = interval

    def cancel(self) -> None:
        self.cancels += 1
        self.callback = None

    async def fire(self) -> None:
        await self.callback()
