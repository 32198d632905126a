"""Deduplication logic for book imports.

Reduces a batch of candidates to unique records by folding each one into
an accumulator keyed by ``dedupe_key``:
1. Probe the bucket for the candidate's own key and confirm with ``is_same_book``
2. Otherwise scan every accumulated record with ``is_same_book``
3. Otherwise start a new entry

Duplicates are merged rather than dropped: the more complete record is the
base and the other one only fills gaps.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, TypeVar

from ..db.schemas import STATUS_PRIORITY, BookCreate, BookResponse, BookStatus, DuplicateGroup
from .matching import dedupe_key, is_same_book, record_authors

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Scalar fields the merge donor may fill when the base lacks them
MERGE_FILL_FIELDS = (
    "rating",
    "notes",
    "isbn",
    "cover_url",
    "page_count",
    "publisher",
    "goodreads_avg_rating",
    "goodreads_rating_count",
    "date_started",
    "date_finished",
)

LONG_TITLE_LENGTH = 30


@dataclass
class DedupeResult:
    """Result of deduplicating one import batch."""

    unique_books: list[BookCreate] = field(default_factory=list)
    merged: int = 0  # candidates folded into another record

    @property
    def total_input(self) -> int:
        return len(self.unique_books) + self.merged


def score_book_input(book: BookCreate) -> int:
    """Completeness score used to pick the merge base."""
    score = 0

    if book.rating:
        score += 10
    if book.goodreads_avg_rating:
        score += 5
    if book.notes:
        score += 3
    if book.status == BookStatus.FINISHED:
        score += 3
    if book.status == BookStatus.READING:
        score += 2
    if book.isbn:
        score += 2
    if book.cover_url:
        score += 2
    if book.page_count:
        score += 1
    if book.tags:
        score += 1
    if len(book.title) > LONG_TITLE_LENGTH:
        score += 1
    if book.date_finished:
        score += 2

    return score


def merge_duplicates(a: BookCreate, b: BookCreate) -> BookCreate:
    """Merge two records describing the same book.

    The higher-scoring record is the base (ties keep ``a``). The donor only
    fills fields the base lacks, tags are unioned, and status is resolved
    separately by the priority ladder regardless of which record won.
    """
    if score_book_input(a) >= score_book_input(b):
        base, donor = a.model_copy(deep=True), b
    else:
        base, donor = b.model_copy(deep=True), a

    for name in MERGE_FILL_FIELDS:
        if not getattr(base, name) and getattr(donor, name):
            setattr(base, name, getattr(donor, name))

    if donor.tags:
        base.tags = list(dict.fromkeys([*base.tags, *donor.tags]))

    priority_a = STATUS_PRIORITY.get(a.status, 0)
    priority_b = STATUS_PRIORITY.get(b.status, 0)
    if priority_b > priority_a:
        base.status = b.status
    elif priority_a > priority_b:
        base.status = a.status

    return base


def deduplicate_books(books: Sequence[BookCreate]) -> DedupeResult:
    """Fold a batch of candidates into unique, merged records."""
    seen: dict[str, BookCreate] = {}
    merged = 0

    for book in books:
        authors = record_authors(book)
        key = dedupe_key(book.title, authors[0] if authors else "")

        bucket = seen.get(key)
        if bucket is not None and is_same_book(book, bucket):
            seen[key] = merge_duplicates(bucket, book)
            merged += 1
            continue

        # Key heuristic can miss matches the containment/fuzzy rules still catch
        match_key = next(
            (k for k, existing in seen.items() if is_same_book(book, existing)),
            None,
        )
        if match_key is not None:
            seen[match_key] = merge_duplicates(seen[match_key], book)
            merged += 1
            continue

        # Same bucket key but a different book: keep both
        unique_key, n = key, 1
        while unique_key in seen:
            n += 1
            unique_key = f"{key}#{n}"
        seen[unique_key] = book

    if merged:
        logger.debug("Merged %d duplicate candidates out of %d", merged, len(books))

    return DedupeResult(unique_books=list(seen.values()), merged=merged)


def dedupe_book_inputs(books: Sequence[BookCreate]) -> list[BookCreate]:
    """Deduplicate a list of candidates, merging duplicates.

    Example:
        >>> books = [
        ...     BookCreate(title="Dune", authors=["Frank Herbert"], rating=5),
        ...     BookCreate(title="Dune", authors=["Frank Herbert"], isbn="9780441172719"),
        ... ]
        >>> [(b.rating, b.isbn) for b in dedupe_book_inputs(books)]
        [(5, '9780441172719')]
    """
    return deduplicate_books(books).unique_books


def is_duplicate_of_existing(candidate: Any, existing_books: Sequence[T]) -> Optional[T]:
    """Return the first existing book that matches the candidate, if any."""
    for existing in existing_books:
        if is_same_book(candidate, existing):
            return existing
    return None


def find_duplicate_groups(books: Sequence[BookResponse]) -> list[DuplicateGroup]:
    """Group library books that are likely the same.

    Each book appears in at most one group; groups are seeded by the first
    unclaimed book and collect every later book matching it.
    """
    groups: list[DuplicateGroup] = []
    claimed: set[str] = set()

    for i, book in enumerate(books):
        if book.id in claimed:
            continue

        members = [book]
        for other in books[i + 1:]:
            if other.id in claimed:
                continue
            if is_same_book(book, other):
                members.append(other)
                claimed.add(other.id)

        if len(members) > 1:
            claimed.add(book.id)
            groups.append(DuplicateGroup(books=members))

    return groups
