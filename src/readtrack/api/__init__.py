"""API module for external book metadata services.

Provides the Google Books client, metadata enrichment, content-type
classification and the Gemini fallback parser.
"""

from .classify import Entry, GoogleBooksLookup, classify_entries, quick_classify
from .enrichment import EnrichmentData, batch_enrich_books, enrich_book_input, lookup_enrichment
from .gemini import GeminiParser
from .googlebooks import GoogleBooksClient, GoogleBooksError, GoogleBooksRateLimitError, Volume

__all__ = [
    "GoogleBooksClient",
    "GoogleBooksError",
    "GoogleBooksRateLimitError",
    "Volume",
    "EnrichmentData",
    "lookup_enrichment",
    "enrich_book_input",
    "batch_enrich_books",
    "Entry",
    "quick_classify",
    "classify_entries",
    "GoogleBooksLookup",
    "GeminiParser",
]
