"""RSS feed fetching and parsing."""

import calendar
import contextlib
import html
import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import feedparser
import httpx

from peoples_thread.collectors.base import BaseFetcher
from peoples_thread.config import settings
from peoples_thread.exceptions import FetchError, ParseError
from peoples_thread.models import FeedItem

logger = logging.getLogger(__name__)


class RSSFetcher(BaseFetcher):
    """Fetches a single syndication feed over HTTP."""

    def __init__(
        self,
        feed_url: str | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.feed_url = feed_url or settings.feed_url
        self.timeout = timeout or settings.fetch_timeout
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def fetch(self, feed_url: str | None = None) -> str:
        """Fetch the raw feed document.

        No retry is attempted here; the scheduler's next tick is the retry.
        """
        url = feed_url or self.feed_url
        try:
            async with self._client() as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"HTTP error fetching feed {url}: {status}")
            raise FetchError(
                f"Failed to fetch feed: {status} {e.response.reason_phrase}",
                status_code=status,
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"Timed out fetching feed {url} after {self.timeout}s")
            raise FetchError(f"Failed to fetch feed: timed out after {self.timeout}s") from e
        except httpx.RequestError as e:
            logger.error(f"Request error fetching feed {url}: {e}")
            raise FetchError(f"Failed to fetch feed: {e}") from e

        logger.info(f"Fetched feed {url} ({len(response.content)} bytes)")
        return response.text

    async def health_check(self, feed_url: str | None = None) -> bool:
        """Check if the feed is accessible."""
        try:
            async with self._client() as client:
                response = await client.head(feed_url or self.feed_url)
                return bool(response.status_code < 400)
        except httpx.HTTPError:
            return False


def parse_feed(raw: str, max_items: int | None = None) -> list[FeedItem]:
    """Parse a raw feed document into normalized feed items.

    Args:
        raw: Feed document as returned by the fetcher
        max_items: Only take this many entries from the top of the feed

    Returns:
        Feed items in feed order; empty for a well-formed feed with no items

    Raises:
        ParseError: The document is not a recognizable RSS/Atom feed
    """
    feed = feedparser.parse(raw)

    if not feed.entries and not feed.get("version"):
        reason = feed.get("bozo_exception") or "no feed items or channel found"
        raise ParseError(f"Document is not a recognizable feed: {reason}")

    if feed.bozo:
        logger.warning(f"Feed is malformed but readable: {feed.bozo_exception}")

    entries = feed.entries if max_items is None else feed.entries[:max_items]

    items = []
    for entry in entries:
        item = _parse_entry(entry)
        if item:
            items.append(item)

    logger.info(f"Parsed {len(items)} items from {len(feed.entries)} feed entries")
    return items


def _parse_entry(entry: Any) -> FeedItem | None:
    """Parse a feed entry into a FeedItem, or None if it lacks title or link."""
    title = _clean_html(entry.get("title", ""))
    link = (entry.get("link") or entry.get("id") or "").strip()

    if not title or not link:
        logger.debug(f"Skipping feed entry without title or link: {entry.get('id')}")
        return None

    summary = ""
    if "summary" in entry:
        summary = entry.summary
    elif "description" in entry:
        summary = entry.description
    summary = _clean_html(summary)

    body = ""
    if entry.get("content"):
        body = _clean_html(entry.content[0].get("value", ""))

    return FeedItem(
        title=title,
        link=link,
        summary=summary,
        published_at=_parse_date(entry),
        body=body or summary,
    )


def _parse_date(entry: Any) -> datetime | None:
    """Extract the publication date as an aware UTC datetime."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            with contextlib.suppress(TypeError, ValueError, OverflowError):
                return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)

    if entry.get("published"):
        with contextlib.suppress(TypeError, ValueError):
            published = parsedate_to_datetime(entry.published)
            if published.tzinfo is None:
                published = published.replace(tzinfo=timezone.utc)
            return published

    return None


def _clean_html(text: str) -> str:
    """Remove HTML tags from text."""
    if not text:
        return ""
    clean = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", text, flags=re.S | re.I)
    clean = re.sub(r"<[^>]+>", "", clean)
    clean = re.sub(r"\s+", " ", html.unescape(clean)).strip()
    return clean
