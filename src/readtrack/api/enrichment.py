"""Fill metadata gaps in candidates from Google Books.

Enrichment never overwrites populated fields and never fails an import:
lookup errors are logged and the book is kept as it was.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

from tqdm import tqdm

from ..db.schemas import BookCreate
from .googlebooks import GoogleBooksClient, GoogleBooksError, Volume

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.2


@dataclass
class EnrichmentData:
    """Optional metadata found for a book."""

    cover_url: Optional[str] = None
    page_count: Optional[int] = None
    description: Optional[str] = None
    genres: list[str] = field(default_factory=list)
    publisher: Optional[str] = None
    first_published: Optional[int] = None
    isbn: Optional[str] = None

    @classmethod
    def from_volume(cls, volume: Volume) -> "EnrichmentData":
        return cls(
            cover_url=volume.cover_url,
            page_count=volume.page_count,
            description=volume.description,
            genres=list(volume.categories),
            publisher=volume.publisher,
            first_published=volume.year,
            isbn=volume.isbn,
        )


def lookup_enrichment(
    client: GoogleBooksClient,
    title: str,
    authors: Sequence[str],
    isbn: Optional[str] = None,
) -> Optional[EnrichmentData]:
    """Look up metadata by ISBN first, then by title and first author.

    Raises:
        GoogleBooksError: If the API call fails
    """
    volume = client.search_by_isbn(isbn) if isbn else None
    if volume is None:
        volume = client.search_by_title_author(title, authors[0] if authors else None)
    if volume is None:
        return None
    return EnrichmentData.from_volume(volume)


def needs_enrichment(book: BookCreate) -> bool:
    return not book.cover_url or not book.page_count or not book.description


def enrich_book_input(client: GoogleBooksClient, book: BookCreate) -> BookCreate:
    """Return a copy of ``book`` with missing metadata filled in."""
    if not needs_enrichment(book):
        return book

    data = lookup_enrichment(client, book.title, book.authors, book.isbn)
    if data is None:
        return book

    updates = {}
    for name in ("cover_url", "page_count", "description", "genres", "publisher", "first_published", "isbn"):
        if not getattr(book, name) and getattr(data, name):
            updates[name] = getattr(data, name)

    return book.model_copy(update=updates, deep=True) if updates else book


def batch_enrich_books(
    books: Sequence[BookCreate],
    client: Optional[GoogleBooksClient] = None,
    delay: float = DEFAULT_DELAY,
    show_progress: bool = False,
) -> list[BookCreate]:
    """Enrich books missing a cover or page count, pausing between lookups.

    Args:
        books: Candidates to enrich
        client: Google Books client (a default one is created if omitted)
        delay: Seconds to wait after each lookup
        show_progress: Show tqdm progress bar

    Returns:
        Books in the same order, enriched where a lookup succeeded
    """
    if client is None:
        client = GoogleBooksClient()

    enriched = []
    for i, book in enumerate(tqdm(books, desc="Enriching", disable=not show_progress)):
        if book.cover_url and book.page_count:
            enriched.append(book)
            continue

        try:
            enriched.append(enrich_book_input(client, book))
        except GoogleBooksError as e:
            logger.warning("Failed to enrich %r: %s", book.title, e)
            enriched.append(book)

        if delay and i < len(books) - 1:
            time.sleep(delay)

    return enriched
