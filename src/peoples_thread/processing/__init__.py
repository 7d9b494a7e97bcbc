"""Processing stages between parsing and persistence."""

from peoples_thread.processing.deduplicator import CorpusDeduplicator, CorpusSnapshot
from peoples_thread.processing.relevance import (
    DEFAULT_KEYWORDS,
    KeywordRelevanceFilter,
    RelevancePredicate,
    load_keywords,
    save_keywords,
)
from peoples_thread.processing.synthesizer import ArticleSynthesizer, slugify

__all__ = [
    "ArticleSynthesizer",
    "CorpusDeduplicator",
    "CorpusSnapshot",
    "DEFAULT_KEYWORDS",
    "KeywordRelevanceFilter",
    "RelevancePredicate",
    "load_keywords",
    "save_keywords",
    "slugify",
]
