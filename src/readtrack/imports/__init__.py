"""Book import functionality from various sources."""

from .base import BaseImporter, BookImportError, FallbackParser, FallbackParserError
from .csv_reader import looks_like_header, read_csv_rows
from .goodreads import GoodreadsImporter, import_goodreads_csv
from .kindle import KindleImporter, import_kindle_text
from .kindle_clippings import (
    BookHighlights,
    ClippingEntry,
    KindleClippingsImporter,
    find_matching_book,
    merge_highlights,
)
from .kobo import KoboImporter, import_kobo_library, is_suspicious_parse
from .libby import LibbyImporter, import_libby_csv
from .readwise import (
    ReadwiseImporter,
    apply_classification,
    import_readwise_csv,
    readwise_import_stats,
)

# Importers by CLI source name
IMPORTERS = {
    "goodreads": GoodreadsImporter,
    "libby": LibbyImporter,
    "kindle": KindleImporter,
    "kobo": KoboImporter,
    "readwise": ReadwiseImporter,
}

__all__ = [
    "BaseImporter",
    "BookImportError",
    "FallbackParser",
    "FallbackParserError",
    "read_csv_rows",
    "looks_like_header",
    "GoodreadsImporter",
    "import_goodreads_csv",
    "LibbyImporter",
    "import_libby_csv",
    "KindleImporter",
    "import_kindle_text",
    "KindleClippingsImporter",
    "ClippingEntry",
    "BookHighlights",
    "find_matching_book",
    "merge_highlights",
    "KoboImporter",
    "import_kobo_library",
    "is_suspicious_parse",
    "ReadwiseImporter",
    "import_readwise_csv",
    "readwise_import_stats",
    "apply_classification",
    "IMPORTERS",
]
