"""Kindle library paste importer.

Parses text copied from the Kindle library page: alternating title and
author lines with UI chrome ("12 books", "Sort by", ...) mixed in.

Pairing is decided by small predicates so each rule can be tested alone:
a line is a title and the next line its author when ``looks_like_author_line``
accepts the pair. Unpaired lines are skipped, never guessed.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..db.schemas import BookCreate, BookStatus
from ..etl.dedupe import dedupe_book_inputs
from .base import BaseImporter

logger = logging.getLogger(__name__)

NOISE_PATTERNS = [
    re.compile(r"^find books like", re.IGNORECASE),
    re.compile(r"^\d+ books?$", re.IGNORECASE),
    re.compile(r"^\d+ titles?$", re.IGNORECASE),
    re.compile(r"^kindle", re.IGNORECASE),
    re.compile(r"^your library", re.IGNORECASE),
    re.compile(r"^sort by", re.IGNORECASE),
    re.compile(r"^filter", re.IGNORECASE),
    re.compile(r"^page \d+", re.IGNORECASE),
    re.compile(r"^showing", re.IGNORECASE),
]

_NAME_WITH_INITIAL = re.compile(r"^[A-Z][a-z]+ [A-Z]\.? [A-Z][a-z]+$")
_TWO_WORD_NAME = re.compile(r"^[A-Z][a-z]+ [A-Z][a-z]+$")
_SERIES_PAREN = re.compile(r"\s*\([^)]*book\s*\d+[^)]*\)", re.IGNORECASE)
_BRACKETED = re.compile(r"\s*\[[^\]]+\]")


@dataclass
class KindleTitle:
    """A title/author pair read from the paste."""

    title: str
    author: str


def is_noise(line: str) -> bool:
    """True for Kindle UI chrome lines."""
    return any(pattern.search(line) for pattern in NOISE_PATTERNS)


def has_name_shape(line: str) -> bool:
    """True for "John Smith" or "John A. Smith" shaped lines."""
    return bool(_NAME_WITH_INITIAL.match(line) or _TWO_WORD_NAME.match(line))


def looks_like_author_line(title: str, candidate: str) -> bool:
    """Decide whether ``candidate`` is the author of ``title``.

    Accepted when it has no colon (subtitles do), is shorter than the
    title, or has a plain personal-name shape.
    """
    return ":" not in candidate or len(candidate) < len(title) or has_name_shape(candidate)


def clean_title(title: str) -> str:
    """Strip "(Book N)" series annotations and bracketed tags.

    Example:
        >>> clean_title("The Eye of the World (The Wheel of Time, Book 1) [Kindle]")
        'The Eye of the World'
    """
    title = _SERIES_PAREN.sub("", title)
    title = _BRACKETED.sub("", title)
    return title.strip()


def parse_kindle_text(text: str) -> list[KindleTitle]:
    """Pair up title and author lines from a Kindle library paste."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    pairs: list[KindleTitle] = []

    i = 0
    while i < len(lines):
        line = lines[i]
        if is_noise(line):
            i += 1
            continue

        candidate = lines[i + 1] if i + 1 < len(lines) else None
        if candidate and not is_noise(candidate) and looks_like_author_line(line, candidate):
            pairs.append(KindleTitle(title=clean_title(line), author=candidate.strip()))
            i += 2
            continue

        logger.debug("Skipping unpaired Kindle line %r", line)
        i += 1

    return pairs


class KindleImporter(BaseImporter[list[BookCreate]]):
    """Imports owned Kindle titles from a pasted library list."""

    source_name = "kindle"

    def parse_text(self, text: str) -> list[BookCreate]:
        books = [self._to_book(pair) for pair in parse_kindle_text(text)]
        return dedupe_book_inputs([b for b in books if b])

    def _to_book(self, pair: KindleTitle) -> Optional[BookCreate]:
        # Owned, read state unknown
        return self._build(title=pair.title, authors=[pair.author], status=BookStatus.TBD)


def import_kindle_text(text: str) -> list[BookCreate]:
    """Parse a pasted Kindle library list into deduplicated candidates."""
    return KindleImporter().parse_text(text)
