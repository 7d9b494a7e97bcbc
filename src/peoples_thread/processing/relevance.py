"""Editorial relevance filtering based on monitored keywords."""

import json
import logging
import re
from pathlib import Path
from typing import Callable, Iterable

from peoples_thread.config import settings
from peoples_thread.models import FeedItem

logger = logging.getLogger(__name__)

RelevancePredicate = Callable[[FeedItem], bool]

DEFAULT_KEYWORDS = [
    "labor", "union", "workers", "strike", "wages", "employment",
    "healthcare", "housing", "inequality", "poverty", "welfare",
    "corporate", "capitalism", "economy", "recession", "inflation",
    "climate", "environment", "fossil fuel", "renewable energy",
    "immigration", "refugee", "border", "deportation",
    "police", "criminal justice", "prison", "reform",
    "education", "student debt", "public school",
    "voting rights", "democracy", "election", "gerrymandering",
    "tax", "wealth", "billionaire", "minimum wage",
    "social security", "medicare", "medicaid",
]  # fmt: skip


def normalize_keywords(keywords: Iterable[str]) -> list[str]:
    """Strip, lowercase and de-duplicate keywords, keeping first-seen order."""
    seen: dict[str, None] = {}
    for keyword in keywords:
        cleaned = " ".join(str(keyword).lower().split())
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def load_keywords(path: Path | None = None) -> list[str]:
    """Load monitored keywords, falling back to the defaults."""
    keywords_path = path or settings.keywords_path
    try:
        with open(keywords_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug(f"No keywords file at {keywords_path}, using defaults")
        return list(DEFAULT_KEYWORDS)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read keywords from {keywords_path}: {e}")
        return list(DEFAULT_KEYWORDS)

    if not isinstance(data, list):
        logger.warning(f"Keywords file {keywords_path} is not a JSON list, using defaults")
        return list(DEFAULT_KEYWORDS)

    return normalize_keywords(data)


def save_keywords(keywords: Iterable[str], path: Path | None = None) -> list[str]:
    """Persist monitored keywords and return the normalized list."""
    keywords_path = path or settings.keywords_path
    normalized = normalize_keywords(keywords)
    keywords_path.parent.mkdir(parents=True, exist_ok=True)
    with open(keywords_path, "w", encoding="utf-8") as f:
        json.dump(normalized, f, indent=2)
    logger.info(f"Saved {len(normalized)} keywords to {keywords_path}")
    return normalized


class KeywordRelevanceFilter:
    """Classify feed items by keyword matches against the editorial focus.

    Matching is case-insensitive on word boundaries and tolerates a trailing
    plural ``s``, so ``union`` matches "unions" but not "reunion".
    """

    def __init__(self, keywords: Iterable[str] | None = None):
        self.keywords = normalize_keywords(keywords if keywords is not None else load_keywords())
        self._patterns = {
            keyword: re.compile(
                r"\b" + r"\s+".join(re.escape(w) for w in keyword.split()) + r"s?\b",
                re.IGNORECASE,
            )
            for keyword in self.keywords
        }

    def matched_keywords(self, item: FeedItem) -> list[str]:
        """Return the keywords found anywhere in the item's text."""
        text = item.searchable_text
        return [keyword for keyword, pattern in self._patterns.items() if pattern.search(text)]

    def is_relevant(self, item: FeedItem) -> bool:
        text = item.searchable_text
        return any(pattern.search(text) for pattern in self._patterns.values())

    __call__ = is_relevant
