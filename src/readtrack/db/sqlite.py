"""SQLite database operations.

Handles database connection, session management, and CRUD operations.
This is the storage collaborator for the import pipeline: it creates
records (singly or in batches), patches them by identity, and applies
bulk status changes and deletes scoped to an owner.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, delete, select, update
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import JSON_LIST_FIELDS, Base, Book, utc_now
from .schemas import BookCreate, BookResponse, BookStatus, BookUpdate

logger = logging.getLogger(__name__)


class Database:
    """Database connection and operations manager."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. If None, uses
                     READTRACK_DB_PATH env var or default location.
        """
        if db_path is None:
            db_path = os.environ.get(
                "READTRACK_DB_PATH",
                str(Path.home() / ".readtrack" / "books.db"),
            )

        self.db_path = Path(db_path)
        self._is_memory = str(db_path) == ":memory:"

        if not self._is_memory:
            self._ensure_directory()

        # In-memory databases share one connection so every session sees the same data
        if self._is_memory:
            self.engine = create_engine(
                "sqlite:///:memory:",
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                connect_args={"check_same_thread": False},
            )
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

    def _ensure_directory(self) -> None:
        """Ensure the database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a database session context manager."""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ========================================================================
    # Book Operations
    # ========================================================================

    @staticmethod
    def _to_row(book: BookCreate, owner_id: str) -> Book:
        data = book.model_dump(exclude=set(JSON_LIST_FIELDS))
        data["status"] = book.status.value
        data["source"] = book.source.value
        db_book = Book(owner_id=owner_id, **data)
        for field in JSON_LIST_FIELDS:
            db_book.set_list(field, getattr(book, field))
        return db_book

    @staticmethod
    def _to_response(db_book: Book) -> BookResponse:
        return BookResponse.model_validate(db_book.to_dict())

    def create_book(self, book: BookCreate, owner_id: str) -> BookResponse:
        """Create a new book record and return it with identity and timestamps."""
        with self.get_session() as s:
            db_book = self._to_row(book, owner_id)
            s.add(db_book)
            s.flush()
            return self._to_response(db_book)

    def create_books(self, books: list[BookCreate], owner_id: str) -> list[BookResponse]:
        """Create a batch of books in one transaction.

        Either every record in the batch is committed or none is; the caller
        decides how to split work into batches.
        """
        with self.get_session() as s:
            rows = [self._to_row(book, owner_id) for book in books]
            s.add_all(rows)
            s.flush()
            created = [self._to_response(row) for row in rows]
        logger.info("Committed batch of %d books for owner %s", len(created), owner_id)
        return created

    def get_book(self, book_id: str) -> Optional[BookResponse]:
        """Get a book by ID."""
        with self.get_session() as s:
            db_book = s.get(Book, book_id)
            return self._to_response(db_book) if db_book else None

    def list_books(self, owner_id: str) -> list[BookResponse]:
        """Get every book belonging to an owner, newest first."""
        with self.get_session() as s:
            stmt = (
                select(Book)
                .where(Book.owner_id == owner_id)
                .order_by(Book.created_at.desc(), Book.title)
            )
            return [self._to_response(b) for b in s.execute(stmt).scalars().all()]

    def update_book(self, book_id: str, patch: BookUpdate) -> Optional[BookResponse]:
        """Apply a partial patch to a book. Identity never changes."""
        with self.get_session() as s:
            db_book = s.get(Book, book_id)
            if not db_book:
                return None

            update_data = patch.model_dump(exclude_unset=True)
            for field, value in update_data.items():
                if field in JSON_LIST_FIELDS:
                    db_book.set_list(field, value)
                elif field in ("status", "source") and value is not None:
                    setattr(db_book, field, value.value)
                else:
                    setattr(db_book, field, value)

            db_book.updated_at = utc_now()
            s.flush()
            return self._to_response(db_book)

    def update_status_batch(
        self, book_ids: list[str], status: BookStatus, owner_id: str
    ) -> int:
        """Set the status of several books at once. Returns rows updated."""
        with self.get_session() as s:
            stmt = (
                update(Book)
                .where(Book.owner_id == owner_id, Book.id.in_(book_ids))
                .values(status=BookStatus(status).value, updated_at=utc_now())
            )
            return s.execute(stmt).rowcount or 0

    def delete_books(self, book_ids: list[str], owner_id: str) -> int:
        """Delete several books at once. Returns rows deleted."""
        with self.get_session() as s:
            stmt = delete(Book).where(Book.owner_id == owner_id, Book.id.in_(book_ids))
            return s.execute(stmt).rowcount or 0

    def delete_book(self, book_id: str, owner_id: str) -> bool:
        """Delete a single book record."""
        return self.delete_books([book_id], owner_id) == 1


# Global database instance
_db: Optional[Database] = None


def get_db(db_path: Optional[str] = None) -> Database:
    """Get or create the global database instance."""
    global _db
    if _db is None:
        _db = Database(db_path)
        _db.create_tables()
    return _db


def reset_db() -> None:
    """Reset the global database instance. Used for testing."""
    global _db
    _db = None
