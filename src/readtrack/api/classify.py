"""Book vs podcast vs article classification for highlight sources.

Readwise mixes books with podcast episodes and articles. Heuristics only
label the obvious cases; everything else is a book unless a lookup
backend says otherwise. Classification never raises and always returns
one label per entry, in input order.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..db.schemas import ContentType
from .googlebooks import GoogleBooksClient, GoogleBooksError

logger = logging.getLogger(__name__)

_EPISODE_NUMBER = re.compile(r"^\d{1,3}[.):\s]")  # "147. On Hell", not "2084: ..."
_HASH_EPISODE = re.compile(r"^#\d{1,3}")
_GUIDE_PART = re.compile(r"^part \d+:", re.IGNORECASE)


@dataclass
class Entry:
    """Title and author of something to classify."""

    title: str
    author: str


Lookup = Callable[[Sequence[Entry]], Sequence]


def quick_classify(title: str, author: str) -> Optional[ContentType]:
    """Label obvious podcasts and articles; None when unsure.

    Example:
        >>> quick_classify("147. On Hell", "Undeceptions with John Dickson")
        <ContentType.PODCAST: 'podcast'>
        >>> quick_classify("Working Identity", "Herminia Ibarra") is None
        True
    """
    author_lower = author.lower()

    if (
        "podcast" in author_lower
        or author_lower.endswith(" show")
        or "your uploads" in author_lower
        or "private feed" in author_lower
    ):
        return ContentType.PODCAST

    if _EPISODE_NUMBER.match(title) or _HASH_EPISODE.match(title) or " | " in title:
        return ContentType.PODCAST

    if (
        "newsletter" in author_lower
        or "substack" in author_lower
        or author_lower.endswith(" reads")
        or "guide chapter" in author_lower
    ):
        return ContentType.ARTICLE

    if _GUIDE_PART.match(title):
        return ContentType.ARTICLE

    return None


def _as_label(value, fallback: ContentType) -> ContentType:
    try:
        return ContentType(value)
    except ValueError:
        return fallback


def classify_entries(entries: Sequence[Entry], lookup: Optional[Lookup] = None) -> list[ContentType]:
    """Classify entries, one label each, same order.

    Args:
        entries: Title/author pairs
        lookup: Optional backend returning one label per entry

    Returns:
        Labels; the heuristic label (book by default) fills any gap
        left by a failing or misbehaving backend
    """
    heuristic = [quick_classify(e.title, e.author) or ContentType.BOOK for e in entries]
    if lookup is None or not entries:
        return heuristic

    try:
        results = list(lookup(entries))
    except Exception as e:
        logger.warning("Classification lookup failed, using heuristics: %s", e)
        return heuristic

    if len(results) != len(entries):
        logger.warning("Classifier returned %d labels for %d entries", len(results), len(entries))

    labels = []
    for i, fallback in enumerate(heuristic):
        labels.append(_as_label(results[i], fallback) if i < len(results) else fallback)
    return labels


class GoogleBooksLookup:
    """Lookup backend: a title that resolves on Google Books is a book.

    Entries the lookup cannot settle (network errors, rate limits) keep
    their heuristic label.
    """

    def __init__(self, client: Optional[GoogleBooksClient] = None):
        self.client = client or GoogleBooksClient()

    def __call__(self, entries: Sequence[Entry]) -> list[ContentType]:
        labels = []
        for entry in entries:
            obvious = quick_classify(entry.title, entry.author)
            if obvious is not None:
                labels.append(obvious)
                continue
            try:
                found = self.client.exists(entry.title, entry.author)
            except GoogleBooksError as e:
                logger.warning("Could not look up %r, keeping it as a book: %s", entry.title, e)
                labels.append(ContentType.BOOK)
                continue
            labels.append(ContentType.BOOK if found else ContentType.PODCAST)
        return labels
