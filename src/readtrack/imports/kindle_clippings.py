"""Kindle "My Clippings.txt" importer.

Each entry is separated by ``==========``::

    Book Title (Author Name)
    - Your Highlight on page 12 | Location 180-182 | Added on Monday, January 1, 2024 10:00:00 AM

    The highlighted text goes here
    ==========

The output is not a list of candidate books: entries are grouped into
per-book highlight bundles that are later attached to books already in
the library.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .base import BaseImporter, parse_date

logger = logging.getLogger(__name__)

ENTRY_SEPARATOR = "=========="

_TITLE_AUTHOR = re.compile(r"^(.+?)\s*\(([^)]+)\)\s*$")
_PAGE = re.compile(r"page\s+(\d+)", re.IGNORECASE)
_LOCATION = re.compile(r"location\s+([\d-]+)", re.IGNORECASE)
_ADDED_ON = re.compile(r"Added on\s+(.+)$", re.IGNORECASE)


@dataclass
class ClippingEntry:
    """One highlight, note or bookmark from the clippings file."""

    book_title: str
    author: str
    kind: str  # highlight, note or bookmark
    content: str
    page: Optional[int] = None
    location: Optional[str] = None
    added_on: Optional[str] = None


@dataclass
class BookHighlights:
    """Highlights and notes collected for one book."""

    book_title: str
    author: str
    highlights: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.highlights) + len(self.notes)


def _parse_entry(entry: str) -> Optional[ClippingEntry]:
    # Kindle writes a BOM before every entry, not just the first
    entry = entry.replace("\ufeff", "")
    lines = [line.strip() for line in entry.strip().splitlines() if line.strip()]
    if len(lines) < 2:
        return None

    title, author = lines[0], ""
    match = _TITLE_AUTHOR.match(lines[0])
    if match:
        title, author = match.group(1).strip(), match.group(2).strip()

    meta = lines[1]
    lowered = meta.lower()
    kind = "highlight"
    if "note" in lowered:
        kind = "note"
    elif "bookmark" in lowered:
        kind = "bookmark"

    content = "\n".join(lines[2:]).strip()
    if kind == "bookmark" or not content:
        return None

    page = _PAGE.search(meta)
    location = _LOCATION.search(meta)
    added_on = _ADDED_ON.search(meta)

    return ClippingEntry(
        book_title=title,
        author=author,
        kind=kind,
        content=content,
        page=int(page.group(1)) if page else None,
        location=location.group(1) if location else None,
        added_on=parse_date(added_on.group(1)) if added_on else None,
    )


def parse_kindle_clippings(text: str) -> list[ClippingEntry]:
    """Parse clippings text, dropping bookmarks and empty entries."""
    entries = []
    for chunk in text.split(ENTRY_SEPARATOR):
        if not chunk.strip():
            continue
        entry = _parse_entry(chunk)
        if entry is None:
            logger.debug("Skipping clipping without content")
            continue
        entries.append(entry)
    return entries


def group_highlights_by_book(entries: Iterable[ClippingEntry]) -> list[BookHighlights]:
    """Group entries per book, suppressing exact duplicate content."""
    books: dict[str, BookHighlights] = {}

    for entry in entries:
        key = entry.book_title.lower().strip()
        book = books.get(key)
        if book is None:
            book = books[key] = BookHighlights(book_title=entry.book_title, author=entry.author)

        if entry.author and not book.author:
            book.author = entry.author

        target = book.highlights if entry.kind == "highlight" else book.notes
        if entry.content not in target:
            target.append(entry.content)

    return list(books.values())


def _normalize(title: str) -> str:
    title = re.sub(r"[^a-z0-9\s]", "", title.lower())
    return re.sub(r"\s+", " ", title).strip()


def find_matching_book(highlight_title: str, existing_titles: Iterable[str]) -> Optional[str]:
    """Find the library title a highlights bundle belongs to.

    Exact normalized match wins; otherwise the first title where either
    normalized string contains the other.

    Example:
        >>> find_matching_book("Sapiens", ["Dune", "Sapiens: A Brief History of Humankind"])
        'Sapiens: A Brief History of Humankind'
    """
    wanted = _normalize(highlight_title)
    if not wanted:
        return None

    titles = list(existing_titles)
    for title in titles:
        if _normalize(title) == wanted:
            return title

    for title in titles:
        existing = _normalize(title)
        if existing and (existing in wanted or wanted in existing):
            return title

    return None


def merge_highlights(existing: list[str], new: Iterable[str]) -> list[str]:
    """Append highlights not already present, keeping order."""
    merged = list(existing)
    for highlight in new:
        if highlight not in merged:
            merged.append(highlight)
    return merged


class KindleClippingsImporter(BaseImporter[list[BookHighlights]]):
    """Reads a clippings file into per-book highlight bundles."""

    source_name = "kindle"

    def parse_text(self, text: str) -> list[BookHighlights]:
        return group_highlights_by_book(parse_kindle_clippings(text))
