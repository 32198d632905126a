"""SQLAlchemy ORM models for local SQLite database.

Tables:
- books: Owner-scoped book records
"""

import json
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .schemas import BookSource, BookStatus


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# List-valued columns stored as JSON arrays
JSON_LIST_FIELDS = ("authors", "genres", "tags", "highlights")


class Book(Base):
    """Book model - stores the canonical book record."""

    __tablename__ = "books"

    # Primary key
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Core fields
    title: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    authors: Mapped[str] = mapped_column(Text, nullable=False)  # JSON array
    status: Mapped[str] = mapped_column(String(20), default=BookStatus.TBD.value, index=True)
    rating: Mapped[Optional[int]] = mapped_column(Integer)
    progress: Mapped[Optional[int]] = mapped_column(Integer)

    # Dates
    date_added: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date
    date_started: Mapped[Optional[str]] = mapped_column(String(10))
    date_finished: Mapped[Optional[str]] = mapped_column(String(10))

    # Metadata
    isbn: Mapped[Optional[str]] = mapped_column(String(13), index=True)
    open_library_id: Mapped[Optional[str]] = mapped_column(String(50))
    cover_url: Mapped[Optional[str]] = mapped_column(Text)
    page_count: Mapped[Optional[int]] = mapped_column(Integer)
    first_published: Mapped[Optional[int]] = mapped_column(Integer)
    publisher: Mapped[Optional[str]] = mapped_column(String(500))
    description: Mapped[Optional[str]] = mapped_column(Text)
    genres: Mapped[Optional[str]] = mapped_column(Text)  # JSON array

    # User data
    notes: Mapped[Optional[str]] = mapped_column(Text)
    tags: Mapped[Optional[str]] = mapped_column(Text)  # JSON array
    highlights: Mapped[Optional[str]] = mapped_column(Text)  # JSON array

    # Community ratings
    goodreads_avg_rating: Mapped[Optional[float]] = mapped_column(Float)
    goodreads_rating_count: Mapped[Optional[int]] = mapped_column(Integer)

    # Source tracking
    source: Mapped[str] = mapped_column(String(20), default=BookSource.MANUAL.value)
    source_id: Mapped[Optional[str]] = mapped_column(String(100))

    # Timestamps
    created_at: Mapped[str] = mapped_column(String(32), default=utc_now)
    updated_at: Mapped[str] = mapped_column(String(32), default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', owner='{self.owner_id}')>"

    # Helper methods for JSON fields
    def get_list(self, field: str) -> list[str]:
        """Get a JSON list column as a Python list."""
        raw = getattr(self, field)
        if raw:
            return json.loads(raw)
        return []

    def set_list(self, field: str, values: Optional[list[str]]) -> None:
        """Store a Python list in a JSON list column."""
        setattr(self, field, json.dumps(list(values)) if values else None)

    def get_authors(self) -> list[str]:
        return self.get_list("authors")

    def to_dict(self) -> dict:
        """Plain dict with list columns decoded, for BookResponse validation."""
        data = {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }
        for field in JSON_LIST_FIELDS:
            data[field] = self.get_list(field)
        return data
