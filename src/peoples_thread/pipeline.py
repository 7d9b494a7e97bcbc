"""Feed ingestion pipeline: fetch, filter, dedupe, synthesize, persist."""

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path

from peoples_thread.collectors import BaseFetcher, RSSFetcher, parse_feed
from peoples_thread.config import Settings, settings
from peoples_thread.exceptions import FetchError, ItemPersistError, ParseError
from peoples_thread.models import ArticleCandidate, FeedItem, IngestionResult, PreviewItem, utc_now
from peoples_thread.processing import (
    ArticleSynthesizer,
    CorpusDeduplicator,
    CorpusSnapshot,
    KeywordRelevanceFilter,
    RelevancePredicate,
    load_keywords,
)
from peoples_thread.storage import ArticleDatabase, ArticleStore

logger = logging.getLogger(__name__)


class RunStage(str, Enum):
    """Stages a single pipeline run moves through."""

    FETCHING = "fetching"
    PARSING = "parsing"
    FILTERING = "filtering"
    LOADING_CORPUS = "loading_corpus"
    PROCESSING_ITEMS = "processing_items"
    DONE = "done"


class IngestionPipeline:
    """Orchestrates the feed ingestion pipeline.

    ``preview()`` only fetches and classifies; ``commit()`` also writes new
    articles. Both always return an IngestionResult and never raise: a failed
    fetch or parse yields ``success=False``, while item-level failures are
    collected in ``errors`` and the run carries on with the next item.

    Items are processed one at a time. Commits on the same pipeline instance
    are serialized; commits from separate processes can still race between
    the corpus snapshot and the write, in which case the store's unique slug
    rejects the second write.
    """

    def __init__(
        self,
        fetcher: BaseFetcher | None = None,
        store: ArticleStore | None = None,
        relevance: RelevancePredicate | None = None,
        synthesizer: ArticleSynthesizer | None = None,
        feed_url: str | None = None,
        max_items: int | None = None,
        persist_timeout: float | None = None,
        item_delay: float | None = None,
        keywords_path: Path | None = None,
    ):
        self.fetcher = fetcher or RSSFetcher()
        self.store = store if store is not None else ArticleDatabase()
        self.relevance = relevance
        self.synthesizer = synthesizer or ArticleSynthesizer()
        self.feed_url = feed_url or settings.feed_url
        self.max_items = max_items or settings.max_feed_items
        self.persist_timeout = (
            persist_timeout if persist_timeout is not None else settings.persist_timeout
        )
        self.item_delay = item_delay if item_delay is not None else settings.item_delay_seconds
        self.keywords_path = keywords_path or settings.keywords_path
        self._commit_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls, cfg: Settings, store: ArticleStore | None = None
    ) -> "IngestionPipeline":
        """Build a pipeline whose collaborators all read from ``cfg``."""
        return cls(
            fetcher=RSSFetcher(
                feed_url=cfg.feed_url, timeout=cfg.fetch_timeout, user_agent=cfg.user_agent
            ),
            store=store if store is not None else ArticleDatabase(cfg.db_path),
            synthesizer=ArticleSynthesizer(
                slug_max_length=cfg.slug_max_length,
                summary_max_length=cfg.summary_max_length,
                author=cfg.default_author,
            ),
            feed_url=cfg.feed_url,
            max_items=cfg.max_feed_items,
            persist_timeout=cfg.persist_timeout,
            item_delay=cfg.item_delay_seconds,
            keywords_path=cfg.keywords_path,
        )

    def _relevance_for_run(self) -> RelevancePredicate:
        # Keywords are re-read every run so edits apply without a restart.
        if self.relevance is not None:
            return self.relevance
        return KeywordRelevanceFilter(load_keywords(self.keywords_path))

    async def preview(self) -> IngestionResult:
        """Fetch and classify the feed without touching the store."""
        start_time = time.monotonic()
        result = IngestionResult(dry_run=True)
        items = None

        try:
            items = await self._fetch_items(result)
            if items is not None:
                relevant = self._filter_relevant(items)
                now = utc_now()
                result.articles_processed = len(relevant)
                result.items = [PreviewItem.from_feed_item(item, now) for item in relevant]
        except Exception as e:
            logger.exception("Feed preview failed")
            self._unexpected_failure(result, items, f"Feed preview failed: {e}")

        result.duration_seconds = time.monotonic() - start_time
        logger.info(f"[{RunStage.DONE.value}] Preview: {result.message}")
        return result

    async def commit(self) -> IngestionResult:
        """Fetch, classify and persist new relevant articles."""
        async with self._commit_lock:
            return await self._run_commit()

    async def _run_commit(self) -> IngestionResult:
        start_time = time.monotonic()
        result = IngestionResult()
        items = None
        logger.info("Starting feed ingestion run")

        try:
            items = await self._fetch_items(result)
            if items is not None:
                await self._process_items(self._filter_relevant(items), result)
        except Exception as e:
            logger.exception("Feed ingestion failed")
            self._unexpected_failure(result, items, f"Feed ingestion failed: {e}")

        result.duration_seconds = time.monotonic() - start_time
        # A run that never got a feed leaves the store untouched.
        if items is not None:
            self._record_run(result)

        logger.info(f"[{RunStage.DONE.value}] {result.message}")
        logger.info(
            f"Summary: {result.articles_created} created, "
            f"{result.duplicates_skipped} duplicates skipped, "
            f"{len(result.errors)} errors in {result.duration_seconds:.1f}s"
        )
        return result

    @staticmethod
    def _unexpected_failure(
        result: IngestionResult, items: list[FeedItem] | None, message: str
    ) -> None:
        # Only a run that never produced parsed items counts as failed.
        if items is None:
            result.success = False
        result.errors.append(message)

    async def _fetch_items(self, result: IngestionResult) -> list[FeedItem] | None:
        """Run the fetch and parse stages.

        Returns None (and marks the result failed) when fetch or parse fails.
        """
        logger.info(f"[{RunStage.FETCHING.value}] Fetching {self.feed_url}")
        try:
            raw = await self.fetcher.fetch(self.feed_url)
            logger.info(f"[{RunStage.PARSING.value}] Parsing feed document")
            return parse_feed(raw, max_items=self.max_items)
        except (FetchError, ParseError) as e:
            logger.error(f"Feed unavailable: {e}")
            result.success = False
            result.errors.append(str(e))
            return None

    def _filter_relevant(self, items: list[FeedItem]) -> list[FeedItem]:
        logger.info(f"[{RunStage.FILTERING.value}] Classifying {len(items)} feed items")
        is_relevant = self._relevance_for_run()
        relevant = [item for item in items if is_relevant(item)]

        for item in relevant:
            logger.debug(f"Relevant feed item: {item.title}")
        logger.info(f"Found {len(relevant)}/{len(items)} relevant feed items")
        return relevant

    async def _process_items(self, relevant: list[FeedItem], result: IngestionResult) -> None:
        result.articles_processed = len(relevant)
        if not relevant:
            logger.info("No relevant articles found with current keywords")
            return

        logger.info(f"[{RunStage.LOADING_CORPUS.value}] Loading existing articles")
        try:
            entries = await asyncio.to_thread(self.store.get_corpus)
        except Exception as e:
            logger.error(f"Could not load existing articles: {e}")
            result.errors.append(f"Failed to load existing articles: {e}")
            return

        deduplicator = CorpusDeduplicator(
            CorpusSnapshot.from_entries(entries),
            slug_max_length=self.synthesizer.slug_max_length,
        )
        logger.info(f"[{RunStage.PROCESSING_ITEMS.value}] Checking against {len(entries)} articles")

        now = utc_now()
        for index, item in enumerate(relevant, 1):
            logger.info(f"Processing article {index}/{len(relevant)}: \"{item.title}\"")

            if deduplicator.is_duplicate(item):
                logger.info("Article already exists, skipping")
                result.duplicates_skipped += 1
                continue

            try:
                candidate = self.synthesizer.synthesize(item, now=now)
                candidate = candidate.model_copy(update={"published": True})
                slug = await self._persist(candidate)
            except ItemPersistError as e:
                self._item_failed(result, item, e)
            except Exception as e:
                logger.exception(f"Unexpected error processing {item.link}")
                self._item_failed(result, item, e)
            else:
                deduplicator.remember(candidate)
                result.articles_created += 1
                result.created_slugs.append(slug)

            if self.item_delay and index < len(relevant):
                await asyncio.sleep(self.item_delay)

    async def _persist(self, candidate: ArticleCandidate) -> str:
        """Write one candidate, bounded by the per-item timeout."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.store.create_article, candidate),
                timeout=self.persist_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ItemPersistError(
                f"Timed out after {self.persist_timeout}s writing '{candidate.slug}'",
                slug=candidate.slug,
            ) from e

    @staticmethod
    def _item_failed(result: IngestionResult, item: FeedItem, error: Exception) -> None:
        message = f'Failed to process "{item.title}": {error}'
        logger.error(message)
        result.errors.append(message)

    def _record_run(self, result: IngestionResult) -> None:
        try:
            self.store.record_run(result)
        except Exception as e:
            logger.warning(f"Could not record ingestion run: {e}")
