"""Database module for local SQLite storage."""

from .models import Book
from .schemas import (
    BookCreate,
    BookResponse,
    BookSource,
    BookStatus,
    BookUpdate,
    ContentType,
    DuplicateGroup,
    reclassify,
)
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Book",
    "BookCreate",
    "BookResponse",
    "BookSource",
    "BookStatus",
    "BookUpdate",
    "ContentType",
    "DuplicateGroup",
    "reclassify",
    "Database",
    "get_db",
    "reset_db",
]
