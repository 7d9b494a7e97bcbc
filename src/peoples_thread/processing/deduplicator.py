"""Detection of feed items that were already published."""

import logging
from dataclasses import dataclass, field

from peoples_thread.models import ArticleCandidate, CorpusEntry, FeedItem
from peoples_thread.processing.synthesizer import slugify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorpusSnapshot:
    """Source URLs and slugs already in the store, taken once per run."""

    source_urls: frozenset[str] = field(default_factory=frozenset)
    slugs: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_entries(cls, entries: list[CorpusEntry]) -> "CorpusSnapshot":
        return cls(
            source_urls=frozenset(e.source_url for e in entries if e.source_url),
            slugs=frozenset(e.slug for e in entries),
        )

    def __len__(self) -> int:
        return len(self.slugs)


class CorpusDeduplicator:
    """Check feed items against a snapshot of already-published articles.

    An item is a duplicate if its link matches a stored source URL, or if the
    slug derived from its title matches a stored slug (the same story coming
    back with a new link).
    """

    def __init__(self, snapshot: CorpusSnapshot, slug_max_length: int | None = None):
        self.slug_max_length = slug_max_length
        self._source_urls = set(snapshot.source_urls)
        self._slugs = set(snapshot.slugs)

    def slug_for(self, item: FeedItem) -> str:
        return slugify(item.title, max_length=self.slug_max_length)

    def is_duplicate(self, item: FeedItem) -> bool:
        """Check whether the item was already published.

        Args:
            item: Relevant feed item

        Returns:
            True if the link or the derived slug is already known
        """
        if item.link in self._source_urls:
            logger.debug(f"Duplicate by source URL: {item.link}")
            return True

        slug = self.slug_for(item)
        if slug in self._slugs:
            logger.debug(f"Duplicate by slug: {slug}")
            return True

        return False

    def remember(self, candidate: ArticleCandidate) -> None:
        """Add an article created during this run to the known corpus."""
        self._source_urls.add(candidate.source_url)
        self._slugs.add(candidate.slug)
