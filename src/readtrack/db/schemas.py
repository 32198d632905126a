"""Pydantic schemas for data validation.

These schemas define the canonical book record shared by every importer
(Goodreads, Libby, Kindle, Kobo, Readwise) and the persisted library.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


UNKNOWN_AUTHOR = "Unknown"


class BookStatus(str, Enum):
    """Reading status. TBD is the default for new/undecided books."""

    TBD = "tbd"
    WANT_TO_READ = "want-to-read"
    READING = "reading"
    FINISHED = "finished"
    PARKED = "parked"


# Higher wins when two records disagree about status
STATUS_PRIORITY = {
    BookStatus.FINISHED: 4,
    BookStatus.READING: 3,
    BookStatus.WANT_TO_READ: 2,
    BookStatus.PARKED: 1,
    BookStatus.TBD: 0,
}


class BookSource(str, Enum):
    """Importer that produced a record."""

    MANUAL = "manual"
    GOODREADS = "goodreads"
    LIBBY = "libby"
    KINDLE = "kindle"
    KOBO = "kobo"
    READWISE = "readwise"
    SNIPD = "snipd"  # Readwise entries that are podcasts/articles
    PASTE = "paste"


class ContentType(str, Enum):
    """Classification label for highlight sources."""

    BOOK = "book"
    PODCAST = "podcast"
    ARTICLE = "article"


def _validate_iso_date(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if isinstance(v, (date, datetime)):
        return v.isoformat()[:10]
    v = str(v).strip()
    # Raises ValueError on malformed dates; importers never pass guesses
    return date.fromisoformat(v[:10]).isoformat()


# ============================================================================
# Base Schemas
# ============================================================================


class BookBase(BaseModel):
    """Canonical book fields common to candidates and persisted books."""

    # Core fields
    title: str = Field(..., min_length=1, description="Book title")
    authors: list[str] = Field(default_factory=lambda: [UNKNOWN_AUTHOR])
    status: BookStatus = Field(default=BookStatus.TBD)
    rating: Optional[int] = Field(None, ge=1, le=5, description="Rating 1-5")
    progress: Optional[int] = Field(None, ge=0, le=100, description="Percent read")

    # Dates (ISO YYYY-MM-DD)
    date_added: Optional[str] = None
    date_started: Optional[str] = None
    date_finished: Optional[str] = None

    # Metadata
    isbn: Optional[str] = None
    open_library_id: Optional[str] = None
    cover_url: Optional[str] = None
    page_count: Optional[int] = Field(None, ge=0)
    first_published: Optional[int] = None
    publisher: Optional[str] = None
    description: Optional[str] = None
    genres: list[str] = Field(default_factory=list)

    # User data
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    highlights: list[str] = Field(default_factory=list)

    # Community ratings
    goodreads_avg_rating: Optional[float] = None
    goodreads_rating_count: Optional[int] = None

    # Source tracking
    source: BookSource = Field(default=BookSource.MANUAL)
    source_id: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v):
        """Trim the title before the non-empty check runs."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("authors", mode="before")
    @classmethod
    def clean_authors(cls, v) -> list[str]:
        """Trim author names, drop blanks, fall back to the Unknown sentinel."""
        if v is None:
            return [UNKNOWN_AUTHOR]
        if isinstance(v, str):
            v = [v]
        authors = [str(a).strip() for a in v if a and str(a).strip()]
        return authors or [UNKNOWN_AUTHOR]

    @field_validator("isbn", mode="before")
    @classmethod
    def clean_isbn(cls, v: Optional[str]) -> Optional[str]:
        """Strip the spreadsheet ="..." wrapper and separators."""
        if v is None:
            return None
        v = str(v).strip()
        if v.startswith('="') and v.endswith('"'):
            v = v[2:-1]
        v = v.strip('"').strip("'").replace("-", "").replace(" ", "")
        return v if v else None

    @field_validator("date_added", "date_started", "date_finished", mode="before")
    @classmethod
    def check_iso_date(cls, v):
        return _validate_iso_date(v)


class BookCreate(BookBase):
    """Schema for a candidate book produced by an importer."""

    pass


class BookUpdate(BaseModel):
    """Schema for patching an existing book. All fields optional."""

    title: Optional[str] = Field(None, min_length=1)
    authors: Optional[list[str]] = None
    status: Optional[BookStatus] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    progress: Optional[int] = Field(None, ge=0, le=100)
    date_added: Optional[str] = None
    date_started: Optional[str] = None
    date_finished: Optional[str] = None
    isbn: Optional[str] = None
    open_library_id: Optional[str] = None
    cover_url: Optional[str] = None
    page_count: Optional[int] = Field(None, ge=0)
    first_published: Optional[int] = None
    publisher: Optional[str] = None
    description: Optional[str] = None
    genres: Optional[list[str]] = None
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    highlights: Optional[list[str]] = None
    goodreads_avg_rating: Optional[float] = None
    goodreads_rating_count: Optional[int] = None
    source: Optional[BookSource] = None
    source_id: Optional[str] = None

    @field_validator("date_added", "date_started", "date_finished", mode="before")
    @classmethod
    def check_iso_date(cls, v):
        return _validate_iso_date(v)


class BookResponse(BookBase):
    """Schema for persisted books (includes DB-generated fields)."""

    id: str
    owner_id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DuplicateGroup(BaseModel):
    """Persisted books judged to be the same underlying book. Never stored."""

    books: list[BookResponse] = Field(..., min_length=1)

    @property
    def ids(self) -> list[str]:
        return [book.id for book in self.books]

    def __len__(self) -> int:
        return len(self.books)


# ============================================================================
# Reclassification
# ============================================================================


NON_BOOK_TAGS = {ContentType.PODCAST.value, ContentType.ARTICLE.value}


def reclassify(record: BookBase, content_type: ContentType) -> BookBase:
    """Return a copy of ``record`` relabelled as book, podcast or article.

    Podcasts and articles are tagged and moved to the ``snipd`` source.
    Reclassifying a ``snipd`` record as a book moves it back to ``readwise``
    and drops the non-book tags. The input record is never modified.
    """
    content_type = ContentType(content_type)
    tags = list(record.tags)

    if content_type == ContentType.BOOK:
        tags = [t for t in tags if t not in NON_BOOK_TAGS]
        source = BookSource.READWISE if record.source == BookSource.SNIPD else record.source
    else:
        if content_type.value not in tags:
            tags.append(content_type.value)
        source = BookSource.SNIPD

    return record.model_copy(update={"tags": tags, "source": source}, deep=True)
