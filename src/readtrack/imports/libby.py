"""Libby timeline importer.

Libby exports one row per loan event, not per book:

cover, title, author, publisher, isbn, timestamp, activity, details, library

A book borrowed three times shows up as six rows (three Borrowed, three
Returned). Rows are consolidated per book before conversion.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from ..db.schemas import BookCreate, BookStatus
from ..etl.dedupe import dedupe_book_inputs
from .base import BaseImporter, parse_date
from .csv_reader import read_csv_rows

logger = logging.getLogger(__name__)

BORROWED = "borrowed"
RETURNED = "returned"

_SUBTITLE = re.compile(r"\s*[:;]\s*.+$")
_TRAILING_PAREN = re.compile(r"\s*\([^)]+\)\s*$")
_TRAILING_BRACKET = re.compile(r"\s*\[[^\]]+\]\s*$")
_AUTHOR_SPLIT = re.compile(r"[,&]|\band\s", re.IGNORECASE)
_AUTHOR_SUFFIX = re.compile(r"\s*(jr\.?|sr\.?|iii?|iv|ph\.?d\.?|m\.?d\.?|dr\.?)\s*$", re.IGNORECASE)


@dataclass
class LibbyLoan:
    """One row of the timeline export."""

    cover: str
    title: str
    author: str
    publisher: str
    isbn: str
    timestamp: str
    activity: str
    details: str
    library: str


@dataclass
class ConsolidatedLoans:
    """Every loan event for one book, with a representative row."""

    loan: LibbyLoan
    borrow_dates: list[str] = field(default_factory=list)
    return_dates: list[str] = field(default_factory=list)


def loan_title_key(title: str) -> str:
    """Title portion of the consolidation key.

    Example:
        >>> loan_title_key("Project Hail Mary: A Novel (Unabridged)")
        'project hail mary'
    """
    title = _SUBTITLE.sub("", title.lower())
    title = _TRAILING_PAREN.sub("", title)
    title = _TRAILING_BRACKET.sub("", title)
    title = re.sub(r"[^a-z0-9\s]", "", title)
    return re.sub(r"\s+", " ", title).strip()


def loan_author_key(author: str) -> str:
    """First author, lowercased, without suffixes or punctuation."""
    first = _AUTHOR_SPLIT.split(author, maxsplit=1)[0].lower()
    first = _AUTHOR_SUFFIX.sub("", first)
    first = re.sub(r"[^a-z\s]", "", first)
    return re.sub(r"\s+", " ", first).strip()


class LibbyImporter(BaseImporter[list[BookCreate]]):
    """Imports borrowing history from a Libby timeline CSV."""

    source_name = "libby"

    COLUMN_COUNT = 9

    def parse_text(self, text: str) -> list[BookCreate]:
        """Parse a timeline export into one deduplicated candidate per book."""
        loans = self.parse_loans(text)
        books = [self._to_book(group) for group in self.consolidate(loans)]
        return dedupe_book_inputs([b for b in books if b])

    def parse_loans(self, text: str) -> list[LibbyLoan]:
        """Read loan rows, skipping the header and short rows."""
        loans = []
        for row in read_csv_rows(text)[1:]:
            if len(row) < self.COLUMN_COUNT:
                logger.debug("Skipping short Libby row (%d fields)", len(row))
                continue
            loans.append(LibbyLoan(*row[: self.COLUMN_COUNT]))
        return loans

    def consolidate(self, loans: list[LibbyLoan]) -> list[ConsolidatedLoans]:
        """Group loan events by normalized title and first author."""
        groups: dict[str, ConsolidatedLoans] = {}

        for loan in loans:
            key = f"{loan_title_key(loan.title)}|{loan_author_key(loan.author)}"
            group = groups.get(key)
            if group is None:
                group = groups[key] = ConsolidatedLoans(loan=loan)

            date = parse_date(loan.timestamp)
            if date:
                activity = loan.activity.strip().lower()
                if activity == BORROWED:
                    group.borrow_dates.append(date)
                elif activity == RETURNED:
                    group.return_dates.append(date)

            # Representative row is the one with the richest cover URL
            if len(loan.cover) > len(group.loan.cover):
                group.loan = loan

        return list(groups.values())

    def _to_book(self, group: ConsolidatedLoans) -> Optional[BookCreate]:
        loan = group.loan
        borrowed = sorted(group.borrow_dates)
        returned = sorted(group.return_dates)

        date_started = borrowed[0] if borrowed else None
        date_finished = returned[-1] if returned else None

        # Never "reading": an open loan doesn't say whether it is being read
        status = BookStatus.FINISHED if date_finished else BookStatus.TBD

        notes = None
        if len(borrowed) > 1:
            notes = f"Borrowed {len(borrowed)} times from {loan.library}"

        return self._build(
            title=loan.title,
            authors=[loan.author],
            cover_url=loan.cover or None,
            isbn=loan.isbn or None,
            publisher=loan.publisher or None,
            status=status,
            date_added=date_started,
            date_started=date_started,
            date_finished=date_finished,
            notes=notes,
        )


def import_libby_csv(text: str) -> list[BookCreate]:
    """Parse, consolidate and deduplicate a Libby timeline export."""
    return LibbyImporter().parse_text(text)
