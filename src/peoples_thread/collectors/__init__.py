"""Feed fetching and parsing."""

from peoples_thread.collectors.base import BaseFetcher
from peoples_thread.collectors.rss import RSSFetcher, parse_feed

__all__ = ["BaseFetcher", "RSSFetcher", "parse_feed"]
