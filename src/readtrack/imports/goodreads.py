"""Goodreads CSV importer.

Imports books from the Goodreads "export library" CSV. Columns are read by
position because the export always carries the same 24 fields:

Book Id, Title, Author, Author l-f, Additional Authors, ISBN, ISBN13,
My Rating, Average Rating, Publisher, Binding, Number of Pages,
Year Published, Original Publication Year, Date Read, Date Added,
Bookshelves, Bookshelves with positions, Exclusive Shelf, My Review,
Spoiler, Private Notes, Read Count, Owned Copies
"""

import logging
from datetime import datetime
from typing import Optional

from ..db.schemas import BookCreate, BookStatus
from ..etl.dedupe import dedupe_book_inputs
from .base import BaseImporter, parse_float, parse_int, split_list
from .csv_reader import read_csv_rows

logger = logging.getLogger(__name__)

PRIVATE_NOTES_BANNER = "\n\n---\nPrivate Notes:\n"


class GoodreadsImporter(BaseImporter[list[BookCreate]]):
    """Imports books from Goodreads CSV export."""

    source_name = "goodreads"

    COLUMN_COUNT = 24

    # Column positions in the export
    BOOK_ID = 0
    TITLE = 1
    AUTHOR = 2
    ADDITIONAL_AUTHORS = 4
    ISBN = 5
    ISBN13 = 6
    MY_RATING = 7
    AVERAGE_RATING = 8
    PUBLISHER = 9
    NUMBER_OF_PAGES = 11
    YEAR_PUBLISHED = 12
    ORIGINAL_PUBLICATION_YEAR = 13
    DATE_READ = 14
    DATE_ADDED = 15
    BOOKSHELVES = 16
    EXCLUSIVE_SHELF = 18
    MY_REVIEW = 19
    PRIVATE_NOTES = 21

    # Shelves every account has; only custom shelves become tags
    STANDARD_SHELVES = {"to-read", "currently-reading", "read"}

    def parse_text(self, text: str) -> list[BookCreate]:
        """Parse a Goodreads export into deduplicated candidates."""
        rows = read_csv_rows(text)
        books = []

        for row in rows[1:]:
            if len(row) < self.COLUMN_COUNT:
                logger.debug("Skipping short Goodreads row (%d fields)", len(row))
                continue
            book = self._parse_row(row)
            if book:
                books.append(book)

        return dedupe_book_inputs(books)

    def _parse_row(self, row: list[str]) -> Optional[BookCreate]:
        """Parse a single CSV row into a candidate."""
        authors = [row[self.AUTHOR]]
        authors.extend(split_list(row[self.ADDITIONAL_AUTHORS]))

        isbn = self._clean_isbn(row[self.ISBN13]) or self._clean_isbn(row[self.ISBN])

        rating = parse_int(row[self.MY_RATING])
        avg_rating = parse_float(row[self.AVERAGE_RATING])
        page_count = parse_int(row[self.NUMBER_OF_PAGES])

        first_published = parse_int(row[self.ORIGINAL_PUBLICATION_YEAR]) or parse_int(
            row[self.YEAR_PUBLISHED]
        )

        return self._build(
            title=row[self.TITLE],
            authors=authors,
            isbn=isbn,
            page_count=page_count if page_count and page_count > 0 else None,
            first_published=first_published or None,
            publisher=row[self.PUBLISHER] or None,
            status=self._parse_status(row[self.EXCLUSIVE_SHELF]),
            rating=rating if rating and rating > 0 else None,
            notes=self._combine_notes(row[self.MY_REVIEW], row[self.PRIVATE_NOTES]),
            tags=self._parse_shelves(row[self.BOOKSHELVES]),
            source_id=row[self.BOOK_ID] or None,
            date_added=self._parse_date(row[self.DATE_ADDED]),
            date_finished=self._parse_date(row[self.DATE_READ]),
            goodreads_avg_rating=avg_rating if avg_rating and avg_rating > 0 else None,
        )

    def _clean_isbn(self, isbn: str) -> Optional[str]:
        """Unwrap the ="..." spreadsheet guard Goodreads puts around ISBNs."""
        if not isbn:
            return None
        isbn = isbn.strip()
        if isbn.startswith("="):
            isbn = isbn[1:]
        isbn = isbn.strip('"').strip()
        return isbn or None

    def _parse_status(self, shelf: str) -> BookStatus:
        """Parse status from Goodreads exclusive shelf.

        Only ``read`` is trusted. Currently-reading and to-read both land as
        TBD so the user decides.
        """
        if shelf.strip().lower() == "read":
            return BookStatus.FINISHED
        return BookStatus.TBD

    def _parse_date(self, date_str: str) -> Optional[str]:
        """Parse ``YYYY/MM/DD``; anything else is absent."""
        if not date_str or not date_str.strip():
            return None
        try:
            return datetime.strptime(date_str.strip(), "%Y/%m/%d").date().isoformat()
        except ValueError:
            return None

    def _parse_shelves(self, shelves_str: str) -> list[str]:
        """Custom shelves as tags, standard shelves excluded."""
        return [
            shelf
            for shelf in split_list(shelves_str)
            if shelf.lower() not in self.STANDARD_SHELVES
        ]

    def _combine_notes(self, review: str, private_notes: str) -> Optional[str]:
        """Combine review and private notes."""
        review = (review or "").strip()
        private_notes = (private_notes or "").strip()

        if review and private_notes:
            return f"{review}{PRIVATE_NOTES_BANNER}{private_notes}"
        return review or private_notes or None


def import_goodreads_csv(text: str) -> list[BookCreate]:
    """Parse and deduplicate a Goodreads CSV export."""
    return GoodreadsImporter().parse_text(text)
