"""Pytest configuration and shared fixtures.

This module provides fixtures for testing readtrack, including
temporary databases, sample candidates and raw export text.
"""

import os
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from typer.testing import CliRunner

from readtrack.config import reset_config
from readtrack.db.schemas import BookCreate, BookSource, BookStatus
from readtrack.db.sqlite import Database, reset_db


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)
    yield db_path
    # Cleanup
    if db_path.exists():
        db_path.unlink()


@pytest.fixture(scope="function")
def db(temp_db_path: Path) -> Generator[Database, None, None]:
    """Create a test database instance."""
    # Reset any global state
    reset_db()
    reset_config()

    # Set environment variable for test database
    os.environ["READTRACK_DB_PATH"] = str(temp_db_path)

    database = Database(str(temp_db_path))
    database.create_tables()
    yield database

    # Cleanup
    reset_db()
    reset_config()
    if "READTRACK_DB_PATH" in os.environ:
        del os.environ["READTRACK_DB_PATH"]


@pytest.fixture
def memory_db() -> Database:
    """In-memory database for tests that don't need a file."""
    database = Database(":memory:")
    database.create_tables()
    return database


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_book_data() -> BookCreate:
    """Create sample book data for testing."""
    return BookCreate(
        title="Atomic Habits",
        authors=["James Clear"],
        status=BookStatus.FINISHED,
        rating=5,
        isbn="9780735211292",
        page_count=320,
        date_added="2023-06-01",
        date_finished="2023-06-15",
        publisher="Avery",
        first_published=2018,
        genres=["Self Help"],
        tags=["habits"],
        source=BookSource.GOODREADS,
        source_id="40121378",
    )


@pytest.fixture
def sample_book_minimal() -> BookCreate:
    """Create minimal book data (only required fields)."""
    return BookCreate(title="Minimal Book", authors=["Test Author"])


@pytest.fixture
def sample_books() -> list[BookCreate]:
    """A small library with distinct books."""
    return [
        BookCreate(title="Dune", authors=["Frank Herbert"], status=BookStatus.FINISHED),
        BookCreate(title="Project Hail Mary", authors=["Andy Weir"]),
        BookCreate(
            title="Sapiens: A Brief History of Humankind",
            authors=["Yuval Noah Harari"],
            status=BookStatus.READING,
        ),
    ]


# ============================================================================
# Export Text Fixtures
# ============================================================================


GOODREADS_HEADER = (
    "Book Id,Title,Author,Author l-f,Additional Authors,ISBN,ISBN13,My Rating,"
    "Average Rating,Publisher,Binding,Number of Pages,Year Published,"
    "Original Publication Year,Date Read,Date Added,Bookshelves,"
    "Bookshelves with positions,Exclusive Shelf,My Review,Spoiler,"
    "Private Notes,Read Count,Owned Copies"
)


def goodreads_row(**overrides) -> str:
    """Build one Goodreads export line; unspecified columns are empty."""
    columns = [
        "book_id", "title", "author", "author_lf", "additional_authors",
        "isbn", "isbn13", "my_rating", "average_rating", "publisher",
        "binding", "pages", "year_published", "original_year", "date_read",
        "date_added", "bookshelves", "bookshelves_positions", "exclusive_shelf",
        "my_review", "spoiler", "private_notes", "read_count", "owned_copies",
    ]
    values = []
    for name in columns:
        value = str(overrides.get(name, ""))
        if any(c in value for c in ',"\n'):
            value = '"' + value.replace('"', '""') + '"'
        values.append(value)
    return ",".join(values)


@pytest.fixture
def make_goodreads_csv():
    """Factory building a Goodreads export from per-row column overrides."""

    def make(*rows: dict) -> str:
        return "\n".join([GOODREADS_HEADER, *(goodreads_row(**row) for row in rows)]) + "\n"

    return make


@pytest.fixture
def goodreads_csv() -> str:
    """Goodreads export with a finished, a to-read and a currently-reading book."""
    rows = [
        GOODREADS_HEADER,
        goodreads_row(
            book_id="40121378",
            title="Atomic Habits",
            author="James Clear",
            isbn='="0735211299"',
            isbn13='="9780735211292"',
            my_rating="5",
            average_rating="4.37",
            publisher="Avery",
            pages="320",
            year_published="2018",
            original_year="2018",
            date_read="2023/06/15",
            date_added="2023/06/01",
            bookshelves="self-help, read",
            exclusive_shelf="read",
        ),
        goodreads_row(
            book_id="2",
            title="Dune",
            author="Frank Herbert",
            my_rating="0",
            average_rating="4.27",
            date_added="2024/01/02",
            bookshelves="to-read",
            exclusive_shelf="to-read",
        ),
        goodreads_row(
            book_id="3",
            title="Project Hail Mary",
            author="Andy Weir",
            my_rating="0",
            date_added="2024/02/03",
            bookshelves="currently-reading, sci-fi",
            exclusive_shelf="currently-reading",
        ),
    ]
    return "\n".join(rows) + "\n"


@pytest.fixture
def goodreads_file(tmp_path: Path, goodreads_csv: str) -> Path:
    """Goodreads export written to disk."""
    path = tmp_path / "goodreads_library_export.csv"
    path.write_text(goodreads_csv, encoding="utf-8")
    return path


LIBBY_HEADER = "cover,title,author,publisher,isbn,timestamp,activity,details,library"


@pytest.fixture
def libby_csv() -> str:
    """Libby timeline: one book borrowed twice, one still on loan."""
    rows = [
        LIBBY_HEADER,
        "https://img/phm-small.jpg,Project Hail Mary,Andy Weir,Ballantine,9780593135204,"
        "2024-01-01,Borrowed,21 days,Seattle Public Library",
        "https://img/phm-large-cover.jpg,Project Hail Mary: A Novel,Andy Weir,Ballantine,"
        "9780593135204,2024-01-15,Returned,,Seattle Public Library",
        "https://img/phm-small.jpg,Project Hail Mary,Andy Weir,Ballantine,9780593135204,"
        "2024-03-01,Borrowed,21 days,Seattle Public Library",
        "https://img/phm-small.jpg,Project Hail Mary,Andy Weir,Ballantine,9780593135204,"
        "2024-03-10,Returned,,Seattle Public Library",
        "https://img/klara.jpg,Klara and the Sun,Kazuo Ishiguro,Knopf,9780593318171,"
        "2024-04-02,Borrowed,14 days,Seattle Public Library",
    ]
    return "\n".join(rows) + "\n"


@pytest.fixture
def kobo_text() -> str:
    """Pasted Kobo library table."""
    return "\n".join(
        [
            "Title Author Series Genre Status Date Added Actions",
            "Project Hail Mary",
            "Andy Weir",
            "Fiction & Literature",
            "100% read12/18/2025",
            "Actions",
            "The Almanack of Naval Ravikant",
            "Eric Jorgenson",
            "Business & Finance",
            "65% read1/2/2026",
            "Actions",
            "Lonely Planet Japan",
            "Lonely Planet, Ray Bartlett +3",
            "Travel Guide",
            "Travel",
            "Unread1/1/2026",
            "Actions",
            "Tomorrow, and Tomorrow, and Tomorrow",
            "Gabrielle Zevin",
            "Fiction & Literature",
            "Buy Now $9.99 1/5/2026",
        ]
    )


READWISE_HEADER = (
    "Highlight,Book Title,Book Author,Amazon Book ID,Note,Color,Tags,"
    "Location Type,Location,Highlighted at,Document tags"
)


@pytest.fixture
def readwise_csv() -> str:
    """Readwise export mixing a book with a podcast episode."""
    rows = [
        READWISE_HEADER,
        '"You do not rise to the level of your goals, you fall to the level of your systems.",'
        "Atomic Habits,James Clear,B07D23CFGR,Key idea,yellow,habits,location,120,"
        "2024-03-01 10:00:00,self-help",
        '"Every action is a vote for the type of person you wish to become.",'
        "Atomic Habits,James Clear,B07D23CFGR,,yellow,identity,location,240,"
        "2024-03-05 09:30:00,self-help",
        '"Clip from the episode",147. On Hell | Undeceptions,Undeceptions Podcast,,,,,'
        "time,12:00,2024-02-01 08:00:00,",
        "fragment,Transcript: Episode 12,Someone,,,,,,,2024-02-02 08:00:00,",
    ]
    return "\n".join(rows) + "\n"


CLIPPINGS = """Atomic Habits (James Clear)
- Your Highlight on page 27 | Location 409-410 | Added on Monday, January 1, 2024 10:00:00 AM

Habits are the compound interest of self-improvement.
==========
Atomic Habits (James Clear)
- Your Note on page 27 | Location 410 | Added on Monday, January 1, 2024 10:01:00 AM

Compare with Deep Work.
==========
Atomic Habits (James Clear)
- Your Bookmark on page 30 | Location 450 | Added on Monday, January 1, 2024 10:05:00 AM


==========
Atomic Habits (James Clear)
- Your Highlight on page 27 | Location 409-410 | Added on Tuesday, January 2, 2024 09:00:00 AM

Habits are the compound interest of self-improvement.
==========
Unknown Pamphlet
- Your Highlight on Location 12-13 | Added on Wednesday, January 3, 2024 08:00:00 PM

A line from somewhere else.
==========
"""


@pytest.fixture
def clippings_text() -> str:
    """Kindle My Clippings.txt content."""
    return CLIPPINGS
