"""Load deduplicated candidates into the library.

Handles batched insertion, bulk status changes and deletes, and attaching
Kindle highlights to books already in the library. Batches are
independent: a failed batch is recorded and the next one still runs, and
earlier batches are never rolled back.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from tqdm import tqdm

from ..db.schemas import BookCreate, BookResponse, BookStatus, BookUpdate
from ..db.sqlite import Database, get_db
from ..imports.kindle_clippings import BookHighlights, find_matching_book, merge_highlights
from .dedupe import deduplicate_books, is_duplicate_of_existing

logger = logging.getLogger(__name__)

INSERT_BATCH_SIZE = 50
UPDATE_BATCH_SIZE = 100


@dataclass
class ImportResult:
    """Result of an import operation."""

    added: int = 0
    skipped: int = 0  # already in the library
    merged: int = 0  # folded into another candidate of the same import
    errors: list[str] = field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return self.added + self.skipped + self.merged


@dataclass
class HighlightImportResult:
    """Result of attaching highlight bundles to library books."""

    matched: int = 0
    unmatched: int = 0
    total_highlights: int = 0
    unmatched_books: list[str] = field(default_factory=list)


def _batches(items: Sequence, size: int):
    for start in range(0, len(items), size):
        yield start // size + 1, items[start:start + size]


def bulk_add_books(
    candidates: Sequence[BookCreate],
    db: Optional[Database] = None,
    owner_id: str = "local",
    existing: Optional[Sequence[BookResponse]] = None,
    batch_size: int = INSERT_BATCH_SIZE,
    show_progress: bool = False,
) -> ImportResult:
    """Deduplicate candidates, skip library duplicates and insert the rest.

    Args:
        candidates: Parsed candidates, possibly containing duplicates
        db: Database instance (uses global if not provided)
        owner_id: Library owner the books are added for
        existing: Library snapshot to check against (loaded if not provided)
        batch_size: Books per insert call
        show_progress: Show tqdm progress bar

    Returns:
        ImportResult with counts and per-batch errors
    """
    if db is None:
        db = get_db()
    if existing is None:
        existing = db.list_books(owner_id)

    result = ImportResult()
    dedupe_result = deduplicate_books(candidates)
    result.merged = dedupe_result.merged

    to_insert = []
    for book in dedupe_result.unique_books:
        if is_duplicate_of_existing(book, existing):
            result.skipped += 1
            continue
        if not book.date_added:
            book = book.model_copy(update={"date_added": date.today().isoformat()})
        to_insert.append(book)

    batches = list(_batches(to_insert, batch_size))
    for number, batch in tqdm(batches, desc="Adding books", unit="batch", disable=not show_progress):
        try:
            created = db.create_books(batch, owner_id)
        except Exception as e:
            logger.warning("Insert batch %d failed: %s", number, e)
            result.errors.append(f"Batch {number}: {e}")
            continue
        result.added += len(created)

    return result


def bulk_update_status(
    book_ids: Sequence[str],
    status: BookStatus,
    db: Optional[Database] = None,
    owner_id: str = "local",
    batch_size: int = UPDATE_BATCH_SIZE,
) -> int:
    """Set the status of many books; returns how many rows changed."""
    if db is None:
        db = get_db()

    updated = 0
    for number, batch in _batches(list(book_ids), batch_size):
        try:
            updated += db.update_status_batch(batch, status, owner_id)
        except Exception as e:
            logger.warning("Status batch %d failed: %s", number, e)
    return updated


def bulk_delete_books(
    book_ids: Sequence[str],
    db: Optional[Database] = None,
    owner_id: str = "local",
    batch_size: int = UPDATE_BATCH_SIZE,
) -> int:
    """Delete many books; returns how many rows were removed."""
    if db is None:
        db = get_db()

    deleted = 0
    for number, batch in _batches(list(book_ids), batch_size):
        try:
            deleted += db.delete_books(batch, owner_id)
        except Exception as e:
            logger.warning("Delete batch %d failed: %s", number, e)
    return deleted


def apply_highlights(
    bundles: Sequence[BookHighlights],
    library: Sequence[BookResponse],
    db: Optional[Database] = None,
) -> HighlightImportResult:
    """Attach clipping bundles to matching library books.

    Only highlights the book doesn't already have are appended. Bundles
    with no matching title are reported, not created as new books.
    """
    if db is None:
        db = get_db()

    result = HighlightImportResult()
    by_title = {book.title: book for book in library}

    for bundle in bundles:
        result.total_highlights += len(bundle.highlights)

        title = find_matching_book(bundle.book_title, by_title.keys())
        if title is None:
            result.unmatched += 1
            result.unmatched_books.append(bundle.book_title)
            continue

        book = by_title[title]
        merged = merge_highlights(book.highlights, bundle.highlights)
        if len(merged) > len(book.highlights):
            updated = db.update_book(book.id, BookUpdate(highlights=merged))
            if updated is not None:
                by_title[title] = updated
        result.matched += 1

    return result
