"""Base importer functionality.

Provides common infrastructure for all book importers: file reading,
the parse contract, and the field-level canonicalization helpers
(dates, numbers, author lists) every format shares.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Generic, Optional, Protocol, TypeVar

from pydantic import ValidationError

from ..db.schemas import BookCreate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BookImportError(Exception):
    """Import file could not be read."""

    pass


class FallbackParserError(BookImportError):
    """Fallback parser failed or returned unusable output."""

    pass


class FallbackParser(Protocol):
    """Anything that can turn free text into candidates when heuristics fail."""

    def parse(self, text: str, source: str) -> list[BookCreate]:
        ...


class BaseImporter(ABC, Generic[T]):
    """Base class for all importers.

    Subclasses turn raw export text into parsed output (usually a list of
    ``BookCreate``). Malformed rows are dropped, never raised.
    """

    source_name: str = "unknown"

    @abstractmethod
    def parse_text(self, text: str) -> T:
        """Parse raw export text.

        Args:
            text: Full contents of the export

        Returns:
            Parsed records
        """
        pass

    def parse_file(self, file_path: Path) -> T:
        """Read an export file and parse it.

        Args:
            file_path: Path to the export

        Returns:
            Parsed records

        Raises:
            BookImportError: If the file is missing or cannot be decoded
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise BookImportError(f"File not found: {file_path}")

        try:
            text = file_path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError:
            logger.debug("%s is not UTF-8, retrying as latin-1", file_path)
            text = file_path.read_text(encoding="latin-1")
        except OSError as e:
            raise BookImportError(f"Error reading file: {e}") from e

        return self.parse_text(text)

    def _build(self, **fields) -> Optional[BookCreate]:
        """Build a candidate, dropping it if a field fails validation."""
        fields.setdefault("source", self.source_name)
        try:
            return BookCreate(**fields)
        except ValidationError as e:
            logger.debug(
                "Dropping %s row %r: %s",
                self.source_name,
                fields.get("title"),
                e.errors()[0].get("msg") if e.errors() else e,
            )
            return None


# ============================================================================
# Field helpers
# ============================================================================

# Formats seen across exports, most specific first
DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%B %d, %Y %H:%M",
    "%B %d, %Y %I:%M %p",
    "%B %d, %Y",
    "%b %d, %Y %H:%M",
    "%b %d, %Y",
    "%A, %B %d, %Y %I:%M:%S %p",
    "%A, %d %B %Y %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
]

_ISO_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def parse_date(value: Optional[str]) -> Optional[str]:
    """Parse a date in any known export format to ``YYYY-MM-DD``.

    Returns None for empty or unrecognized values; dates are never guessed.

    Example:
        >>> parse_date("December 28, 2025 14:49")
        '2025-12-28'
        >>> parse_date("sometime") is None
        True
    """
    if not value or not value.strip():
        return None

    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue

    # Timestamps with offsets or odd precision, e.g. 2026-01-07 14:35:57.300886+00:00
    match = _ISO_PREFIX.match(value)
    if match:
        try:
            return datetime.strptime(match.group(1), "%Y-%m-%d").date().isoformat()
        except ValueError:
            return None

    return None


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse integer, returning None for invalid values."""
    if not value or not str(value).strip():
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return None


def parse_float(value: Optional[str]) -> Optional[float]:
    """Parse float, returning None for invalid values."""
    if not value or not str(value).strip():
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def split_list(value: Optional[str], separator: str = ",") -> list[str]:
    """Split a delimited string into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(separator) if item.strip()]


def join_notes(parts: list[str], separator: str = "\n\n---\n\n") -> Optional[str]:
    """Join non-empty note fragments with a separator banner."""
    parts = [p.strip() for p in parts if p and p.strip()]
    return separator.join(parts) if parts else None
