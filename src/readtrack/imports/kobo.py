"""Kobo library paste importer.

Text copied from the kobo.com library table has no column delimiters.
Each book is a run of lines ending with a status+date line, where the
status and date are glued together::

    Project Hail Mary
    Andy Weir
    Fiction & Literature
    65% read12/18/2025

The parser anchors on status+date lines and walks backwards, classifying
the lines it collects with the predicates below. Precedence, applied per
line from the anchor outwards:

1. ``is_genre`` (only the line right above the anchor)
2. ``looks_like_series`` (first match only)
3. ``looks_like_author`` (first match only)
4. title, once an author is known; before that an unclassified line is
   taken as the author and the next unclassified line as the title
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..db.schemas import BookCreate, BookStatus
from ..etl.dedupe import dedupe_book_inputs
from .base import BaseImporter, FallbackParser, FallbackParserError, split_list
from .csv_reader import looks_like_header

logger = logging.getLogger(__name__)

MAX_LOOKBACK_LINES = 6
SUSPICIOUS_MIN_LINES = 10
SUSPICIOUS_MAX_BOOKS = 3

STATUS_UNREAD = "Unread"
STATUS_BUY_NOW = "Buy Now"
STATUS_PREVIEW = "Preview"

GENRES = [
    "nonfiction",
    "fiction",
    "business",
    "biography",
    "memoir",
    "travel",
    "fiction & literature",
    "business & finance",
]

_STATUS_DATE = re.compile(r"(\d{1,2}/\d{1,2}/\d{4})$")
_PROGRESS = re.compile(r"(\d+)%\s*(read|played)", re.IGNORECASE)
_COAUTHOR_COUNT = re.compile(r"\s*\+\d+$")

_AUTHOR_PATTERNS = [
    re.compile(r",\s*[A-Z]"),  # "John Smith, Jane Doe"
    re.compile(r"\+\d+$"),  # "John Smith +2"
    re.compile(r"\b(PhD|Dr\.|MD|Jr\.|Sr\.)\b", re.IGNORECASE),
    re.compile(r"^[A-Z][a-z]+\s+[A-Z]"),
]

_SERIES_PATTERNS = [
    re.compile(r"Book\s*\d+", re.IGNORECASE),
    re.compile(r"Series", re.IGNORECASE),
    re.compile(r"Vol(ume)?\.?\s*\d+", re.IGNORECASE),
    re.compile(r"Part\s*\d+", re.IGNORECASE),
    re.compile(r"Guide$", re.IGNORECASE),
    re.compile(r"Collection$", re.IGNORECASE),
    re.compile(r"Edition$", re.IGNORECASE),
]
_SERIES_PHRASES = ("signature collection", "best trips")


@dataclass
class KoboBook:
    """One book read from the pasted table, before conversion."""

    title: str
    author: str
    status: str
    date_added: str  # M/D/YYYY as pasted
    series: Optional[str] = None
    genre: Optional[str] = None
    progress: Optional[int] = None


# ============================================================================
# Line classifiers
# ============================================================================


def is_genre(line: str) -> bool:
    """True if the line is (or starts with) a Kobo genre label."""
    lower = line.lower()
    return any(lower == genre or lower.startswith(genre) for genre in GENRES)


def looks_like_series(line: str) -> bool:
    """True for series names such as "Book 3", "Vol. 2" or "Travel Guide"."""
    lower = line.lower()
    if any(pattern.search(line) for pattern in _SERIES_PATTERNS):
        return True
    return lower in ("travel guide", "road trips guide") or any(
        phrase in lower for phrase in _SERIES_PHRASES
    )


def looks_like_author(line: str) -> bool:
    """True for author lines: name lists, "+N" suffixes, titles, name shape."""
    return any(pattern.search(line) for pattern in _AUTHOR_PATTERNS)


def is_status_date_line(line: str) -> bool:
    return bool(_STATUS_DATE.search(line))


def _is_noise(line: str) -> bool:
    return line in ("Actions", STATUS_PREVIEW) or line.lower().startswith("buy now")


def parse_status_part(status_part: str) -> tuple[str, Optional[int]]:
    """Split the status text in front of the date into status and progress.

    Example:
        >>> parse_status_part("65% read")
        ('65% read', 65)
        >>> parse_status_part("Buy Now $9.99")
        ('Buy Now', None)
    """
    match = _PROGRESS.search(status_part)
    if match:
        return status_part, int(match.group(1))

    lower = status_part.lower()
    if lower.startswith("buy now"):
        return STATUS_BUY_NOW, None

    return status_part or STATUS_UNREAD, None


def is_suspicious_parse(line_count: int, book_count: int) -> bool:
    """True when many lines yielded almost no books."""
    return line_count >= SUSPICIOUS_MIN_LINES and book_count < SUSPICIOUS_MAX_BOOKS


# ============================================================================
# Field normalization (shared with the fallback parser)
# ============================================================================


def parse_kobo_date(value: Optional[str]) -> Optional[str]:
    """``M/D/YYYY`` to ISO date; None when absent or invalid."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%m/%d/%Y").date().isoformat()
    except ValueError:
        return None


def split_kobo_authors(author: str) -> list[str]:
    """Drop the "+N" co-author count and split on commas."""
    return split_list(_COAUTHOR_COUNT.sub("", author or ""))


def is_owned(status: str) -> bool:
    """Buy Now and Preview rows are store listings, not owned books."""
    lower = status.lower()
    return not (lower.startswith("buy now") or lower == "preview")


# ============================================================================
# Parser
# ============================================================================


def _collect_lines(lines: list[str], anchor: int, floor: int = 0) -> list[str]:
    collected = []
    index = anchor - 1
    while index >= floor and len(collected) < MAX_LOOKBACK_LINES:
        line = lines[index]
        index -= 1
        if is_status_date_line(line):
            break
        if not line or _is_noise(line):
            continue
        collected.append(line)
    return collected


def classify_lines(lines: list[str]) -> dict[str, Optional[str]]:
    """Assign collected lines (nearest the anchor first) to book fields."""
    genre = series = author = title = None

    for i, line in enumerate(lines):
        if i == 0 and is_genre(line):
            genre = line
        elif not series and looks_like_series(line):
            series = line
        elif not author and looks_like_author(line):
            author = line
        elif not title:
            if author:
                title = line
                break
            author = line

    # Author found but nothing left over: the furthest line is the title
    if author and not title and len(lines) > 1:
        title = lines[-1]
        if title == author:
            title = None

    return {"genre": genre, "series": series, "author": author, "title": title}


def parse_kobo_library(text: str) -> list[KoboBook]:
    """Extract raw Kobo rows from pasted library text."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    start = 0
    if lines and looks_like_header(lines[:1], ("title", "author")):
        start = 1

    books = []
    for index in range(start, len(lines)):
        match = _STATUS_DATE.search(lines[index])
        if not match:
            continue

        date_added = match.group(1)
        status, progress = parse_status_part(lines[index][: -len(date_added)].strip())

        collected = _collect_lines(lines, index, floor=start)
        if len(collected) < 2:
            logger.debug("Skipping Kobo row with too few lines before %r", lines[index])
            continue

        fields = classify_lines(collected)
        if not fields["title"] or not fields["author"]:
            logger.debug("Could not find title and author for Kobo row %r", lines[index])
            continue

        books.append(
            KoboBook(
                title=fields["title"],
                author=fields["author"],
                series=fields["series"],
                genre=fields["genre"],
                status=status,
                date_added=date_added,
                progress=progress,
            )
        )

    return books


class KoboImporter(BaseImporter[list[BookCreate]]):
    """Imports a pasted Kobo library table.

    Args:
        fallback: Optional parser used when the heuristic parse looks broken
    """

    source_name = "kobo"

    def __init__(self, fallback: Optional[FallbackParser] = None):
        self.fallback = fallback

    def parse_text(self, text: str) -> list[BookCreate]:
        books = [self._to_book(kobo) for kobo in parse_kobo_library(text)]
        books = [b for b in books if b]

        line_count = sum(1 for line in text.splitlines() if line.strip())
        if self.fallback is not None and is_suspicious_parse(line_count, len(books)):
            logger.info(
                "Kobo parse found %d books in %d lines, trying fallback parser",
                len(books),
                line_count,
            )
            try:
                books = self.fallback.parse(text, self.source_name)
            except FallbackParserError as e:
                logger.warning("Fallback parser failed, keeping heuristic result: %s", e)

        return dedupe_book_inputs(books)

    def _to_book(self, kobo: KoboBook) -> Optional[BookCreate]:
        if not is_owned(kobo.status):
            return None

        # Only a complete read counts; partial progress stays TBD
        finished = kobo.progress == 100 or "100%" in kobo.status
        date_added = parse_kobo_date(kobo.date_added)

        return self._build(
            title=kobo.title,
            authors=split_kobo_authors(kobo.author),
            status=BookStatus.FINISHED if finished else BookStatus.TBD,
            progress=kobo.progress,
            date_added=date_added,
            date_finished=date_added if finished else None,
        )


def import_kobo_library(text: str, fallback: Optional[FallbackParser] = None) -> list[BookCreate]:
    """Parse a Kobo paste into deduplicated candidates."""
    return KoboImporter(fallback=fallback).parse_text(text)
