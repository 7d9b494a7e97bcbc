"""Base fetcher interface."""

from abc import ABC, abstractmethod


class BaseFetcher(ABC):
    """Abstract base class for feed fetchers."""

    @abstractmethod
    async def fetch(self, feed_url: str | None = None) -> str:
        """Retrieve the raw feed document.

        Args:
            feed_url: Feed to fetch, defaults to the configured feed

        Returns:
            Raw response body

        Raises:
            FetchError: Transport failure, timeout or non-success status
        """
        ...

    @abstractmethod
    async def health_check(self, feed_url: str | None = None) -> bool:
        """Check if the feed is reachable.

        Args:
            feed_url: Feed to check, defaults to the configured feed

        Returns:
            True if the feed answers with a non-error status
        """
        ...
