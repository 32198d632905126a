"""ETL module for reconciling imported books.

Matching decides whether two records are the same book, dedupe folds a
batch of candidates into unique merged records, and load commits them to
the library in batches.
"""

from .matching import (
    core_title,
    dedupe_key,
    is_same_book,
    normalize_author,
    normalize_title,
)
from .dedupe import (
    DedupeResult,
    dedupe_book_inputs,
    deduplicate_books,
    find_duplicate_groups,
    is_duplicate_of_existing,
    merge_duplicates,
    score_book_input,
)
from .load import (
    HighlightImportResult,
    ImportResult,
    apply_highlights,
    bulk_add_books,
    bulk_delete_books,
    bulk_update_status,
)

__all__ = [
    # Matching
    "core_title",
    "dedupe_key",
    "is_same_book",
    "normalize_author",
    "normalize_title",
    # Dedupe
    "DedupeResult",
    "dedupe_book_inputs",
    "deduplicate_books",
    "find_duplicate_groups",
    "is_duplicate_of_existing",
    "merge_duplicates",
    "score_book_input",
    # Load
    "HighlightImportResult",
    "ImportResult",
    "apply_highlights",
    "bulk_add_books",
    "bulk_delete_books",
    "bulk_update_status",
]
