"""Tests for feed fetching and parsing."""

from datetime import datetime, timezone

import httpx
import pytest

from conftest import build_rss
from peoples_thread.collectors import RSSFetcher, parse_feed
from peoples_thread.exceptions import FetchError, ParseError

FEED_URL = "https://feeds.example.com/rss"


def make_fetcher(handler) -> RSSFetcher:
    return RSSFetcher(
        feed_url=FEED_URL,
        timeout=5,
        user_agent="PeoplesThreadTest/1.0",
        transport=httpx.MockTransport(handler),
    )


class TestRSSFetcher:
    """Tests for RSSFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_returns_body_and_sends_user_agent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_agent"] = request.headers.get("user-agent")
            seen["url"] = str(request.url)
            return httpx.Response(200, text="<rss></rss>")

        body = await make_fetcher(handler).fetch()

        assert body == "<rss></rss>"
        assert seen["user_agent"] == "PeoplesThreadTest/1.0"
        assert seen["url"] == FEED_URL

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self):
        fetcher = make_fetcher(lambda request: httpx.Response(500))

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch()

        assert exc_info.value.status_code == 500
        assert "500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(FetchError, match="timed out"):
            await make_fetcher(handler).fetch()

    @pytest.mark.asyncio
    async def test_connection_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError, match="connection refused"):
            await make_fetcher(handler).fetch()

    @pytest.mark.asyncio
    async def test_non_feed_body_is_not_inspected(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200, text="not xml"))
        assert await fetcher.fetch() == "not xml"

    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await make_fetcher(lambda request: httpx.Response(200)).health_check()
        assert not await make_fetcher(lambda request: httpx.Response(404)).health_check()


class TestParseFeed:
    """Tests for parse_feed."""

    def test_parses_items_in_order(self, sample_feed: str):
        items = parse_feed(sample_feed)

        assert [i.title for i in items] == [
            "Nurses union votes to strike over staffing",
            "New species of frog found in Peru",
            "City council debates zoning",
        ]

    def test_strips_cdata_and_html(self, sample_feed: str):
        item = parse_feed(sample_feed)[0]

        assert item.summary == "Hospital nurses authorized a strike."
        assert item.link == "https://www.pbs.org/newshour/nation/nurses-union-strike"

    def test_parses_date_as_utc(self, sample_feed: str):
        item = parse_feed(sample_feed)[0]
        assert item.published_at == datetime(2025, 10, 14, 22, 0, tzinfo=timezone.utc)

    def test_missing_date_is_none(self, sample_feed: str):
        assert parse_feed(sample_feed)[1].published_at is None

    def test_body_from_content_encoded(self, sample_feed: str):
        item = parse_feed(sample_feed)[2]
        assert item.body == "The plan would add affordable housing near transit."
        assert item.summary == "Members argued over the plan."

    def test_body_defaults_to_summary(self, sample_feed: str):
        item = parse_feed(sample_feed)[1]
        assert item.body == item.summary

    def test_missing_summary_allowed(self):
        items = parse_feed(build_rss([{"title": "Strike", "link": "https://example.com/s"}]))

        assert len(items) == 1
        assert items[0].summary == ""
        assert items[0].body == ""

    def test_skips_items_without_link(self):
        feed = build_rss(
            [
                {"title": "No link here"},
                {"title": "Has link", "link": "https://example.com/ok"},
            ]
        )
        assert [i.title for i in parse_feed(feed)] == ["Has link"]

    def test_decodes_entities(self):
        feed = build_rss(
            [
                {
                    "title": "Wages &amp; hours",
                    "link": "https://example.com/w",
                    "description": "Pay &amp; benefits",
                }
            ]
        )
        item = parse_feed(feed)[0]
        assert item.summary == "Pay & benefits"

    def test_max_items(self, sample_feed: str):
        assert len(parse_feed(sample_feed, max_items=2)) == 2

    def test_empty_feed_is_not_an_error(self):
        assert parse_feed(build_rss([])) == []

    def test_unrecognized_document_raises(self):
        with pytest.raises(ParseError):
            parse_feed("this is not a feed at all")

    def test_atom_feed(self):
        atom = """<?xml version="1.0" encoding="utf-8"?>
        <feed xmlns="http://www.w3.org/2005/Atom">
          <title>Example</title>
          <entry>
            <title>Teachers strike enters second week</title>
            <link href="https://example.com/teachers"/>
            <id>urn:uuid:1</id>
            <updated>2025-10-01T12:00:00Z</updated>
            <summary>Schools remain closed.</summary>
          </entry>
        </feed>"""

        items = parse_feed(atom)

        assert len(items) == 1
        assert items[0].link == "https://example.com/teachers"
        assert items[0].published_at == datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)
