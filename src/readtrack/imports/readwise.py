"""Readwise CSV importer.

Readwise exports one row per highlight:

Highlight, Book Title, Book Author, Amazon Book ID, Note, Color, Tags,
Location Type, Location, Highlighted at, Document tags

Rows are grouped per book. Podcast episodes (Snipd and friends) end up in
the same export, so each book gets a conservative podcast flag; anything
not obviously a podcast stays a book until a classifier says otherwise.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from ..db.schemas import (
    UNKNOWN_AUTHOR,
    BookCreate,
    BookSource,
    BookStatus,
    ContentType,
    reclassify,
)
from ..etl.dedupe import dedupe_book_inputs
from .base import BaseImporter, join_notes, parse_date, split_list
from .csv_reader import read_csv_rows

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 3
PODCAST_AUTHOR_MARKERS = ("podcast", "your uploads", "private feed for")
EPISODE_SEPARATOR = " | "

_AND = re.compile(r" and ", re.IGNORECASE)


@dataclass
class ReadwiseRow:
    """One highlight row."""

    highlight: str
    book_title: str
    book_author: str
    amazon_book_id: Optional[str] = None
    note: Optional[str] = None
    color: Optional[str] = None
    tags: Optional[str] = None
    location_type: Optional[str] = None
    location: Optional[str] = None
    highlighted_at: Optional[str] = None
    document_tags: Optional[str] = None


@dataclass
class ReadwiseBook:
    """Highlights and notes accumulated for one book."""

    title: str
    authors: list[str]
    amazon_book_id: Optional[str] = None
    highlights: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    latest_highlight_date: Optional[str] = None
    is_podcast: bool = False

    def add_tags(self, tags: Iterable[str]) -> None:
        for tag in tags:
            if tag not in self.tags:
                self.tags.append(tag)


def parse_authors(author: str) -> list[str]:
    """Split "A, B and C" into separate names.

    Example:
        >>> parse_authors("Chip Heath and Dan Heath")
        ['Chip Heath', 'Dan Heath']
    """
    authors = split_list(_AND.sub(", ", author))
    return authors or [UNKNOWN_AUTHOR]


def should_skip(title: str) -> bool:
    """True for transcript fragments, speaker labels, URLs and stub titles."""
    lower = title.lower()
    if "transcript:" in lower or lower.startswith("speaker "):
        return True
    return title.startswith("http") or len(title) < MIN_TITLE_LENGTH


def is_obvious_podcast(title: str, author: str) -> bool:
    """Conservative podcast check on title and author alone."""
    author = author.lower()
    if any(marker in author for marker in PODCAST_AUTHOR_MARKERS):
        return True
    return EPISODE_SEPARATOR in title


def book_key(title: str, author: str) -> str:
    first_author = author.lower().strip().split(",")[0]
    return f"{title.lower().strip()}|||{first_author}"


def parse_readwise_rows(text: str) -> list[ReadwiseRow]:
    """Read highlight rows, skipping the header and rows without a title."""
    rows = []
    for values in read_csv_rows(text)[1:]:
        if len(values) < 3 or not values[1]:
            logger.debug("Skipping Readwise row without title")
            continue
        values = [v or None for v in values[:11]]
        rows.append(
            ReadwiseRow(
                values[0] or "",
                values[1],
                values[2] or "",
                *values[3:],
            )
        )
    return rows


def group_by_book(rows: Sequence[ReadwiseRow]) -> list[ReadwiseBook]:
    """Group highlight rows into per-book bundles."""
    books: dict[str, ReadwiseBook] = {}

    for row in rows:
        if should_skip(row.book_title):
            logger.debug("Skipping Readwise entry %r", row.book_title)
            continue

        key = book_key(row.book_title, row.book_author)
        book = books.get(key)
        if book is None:
            book = books[key] = ReadwiseBook(
                title=row.book_title,
                authors=parse_authors(row.book_author),
                amazon_book_id=row.amazon_book_id,
                is_podcast=is_obvious_podcast(row.book_title, row.book_author),
            )

        if row.highlight.strip():
            book.highlights.append(row.highlight.strip())
        if row.note and row.note.strip():
            book.notes.append(row.note.strip())

        book.add_tags(split_list(row.tags))
        book.add_tags(split_list(row.document_tags))

        date = parse_date(row.highlighted_at)
        if date and (not book.latest_highlight_date or date > book.latest_highlight_date):
            book.latest_highlight_date = date

    return list(books.values())


class ReadwiseImporter(BaseImporter[list[BookCreate]]):
    """Imports highlighted books (and podcasts) from a Readwise export."""

    source_name = "readwise"

    def parse_text(self, text: str) -> list[BookCreate]:
        books = [self._to_book(b) for b in group_by_book(parse_readwise_rows(text))]
        return dedupe_book_inputs([b for b in books if b])

    def _to_book(self, book: ReadwiseBook) -> Optional[BookCreate]:
        tags = list(book.tags)
        if book.is_podcast and ContentType.PODCAST.value not in tags:
            tags.append(ContentType.PODCAST.value)

        # A highlight means the book was read (or the episode listened to)
        return self._build(
            title=book.title,
            authors=book.authors,
            status=BookStatus.FINISHED,
            source=BookSource.SNIPD if book.is_podcast else BookSource.READWISE,
            source_id=book.amazon_book_id,
            highlights=book.highlights,
            notes=join_notes(book.notes),
            tags=tags,
            date_added=book.latest_highlight_date,
            date_finished=book.latest_highlight_date,
        )


def import_readwise_csv(text: str) -> list[BookCreate]:
    """Parse, group and deduplicate a Readwise export."""
    return ReadwiseImporter().parse_text(text)


def readwise_import_stats(text: str) -> dict:
    """Summary shown before importing: highlight rows, books and their titles."""
    rows = parse_readwise_rows(text)
    books = group_by_book(rows)
    return {
        "total_highlights": len(rows),
        "unique_books": len(books),
        "book_titles": [book.title for book in books],
    }


def apply_classification(
    books: Sequence[BookCreate], labels: Sequence[ContentType]
) -> list[BookCreate]:
    """Relabel candidates with classifier output (one label per book, same order).

    Non-book labels move the record to the snipd source with a matching
    tag. Book labels leave heuristic podcast flags in place.
    """
    results = []
    for book, label in zip(books, labels):
        label = ContentType(label)
        if label == ContentType.BOOK:
            results.append(book)
        else:
            results.append(reclassify(book, label))
    # Books without a label are kept unchanged
    results.extend(books[len(labels):])
    return results
