"""Tests for metadata enrichment."""

from unittest.mock import MagicMock, patch

from readtrack.api.enrichment import (
    EnrichmentData,
    batch_enrich_books,
    enrich_book_input,
    lookup_enrichment,
    needs_enrichment,
)
from readtrack.api.googlebooks import GoogleBooksError, Volume
from readtrack.db.schemas import BookCreate

VOLUME = Volume(
    id="XfFvDwAAQBAJ",
    title="Atomic Habits",
    authors=["James Clear"],
    publisher="Penguin",
    published_date="2018-10-16",
    description="Tiny changes, remarkable results.",
    page_count=320,
    categories=["Self-Help"],
    image_links={"thumbnail": "http://img/cover?zoom=1"},
    identifiers={"ISBN_13": "9780735211292"},
)


def _client(volume=VOLUME) -> MagicMock:
    client = MagicMock()
    client.search_by_isbn.return_value = volume
    client.search_by_title_author.return_value = volume
    return client


class TestLookupEnrichment:
    """Tests for lookup_enrichment."""

    def test_isbn_first(self):
        client = _client()
        data = lookup_enrichment(client, "Atomic Habits", ["James Clear"], isbn="9780735211292")

        assert isinstance(data, EnrichmentData)
        assert data.page_count == 320
        assert data.first_published == 2018
        assert data.cover_url == "https://img/cover?zoom=2"
        client.search_by_title_author.assert_not_called()

    def test_title_author_fallback(self):
        client = _client()
        client.search_by_isbn.return_value = None

        lookup_enrichment(client, "Atomic Habits", ["James Clear"], isbn="123")
        client.search_by_title_author.assert_called_once_with("Atomic Habits", "James Clear")

    def test_not_found(self):
        assert lookup_enrichment(_client(volume=None), "Nothing", []) is None


class TestEnrichBookInput:
    """Tests for enrich_book_input."""

    def test_fills_gaps_only(self):
        book = BookCreate(title="Atomic Habits", authors=["James Clear"], publisher="Avery")
        enriched = enrich_book_input(_client(), book)

        assert enriched.publisher == "Avery"
        assert enriched.page_count == 320
        assert enriched.genres == ["Self-Help"]
        assert enriched.isbn == "9780735211292"
        assert book.page_count is None

    def test_complete_book_not_looked_up(self):
        client = _client()
        book = BookCreate(
            title="Atomic Habits",
            cover_url="https://img/own.jpg",
            page_count=300,
            description="Own",
        )

        assert enrich_book_input(client, book) is book
        client.search_by_title_author.assert_not_called()

    def test_needs_enrichment(self):
        assert needs_enrichment(BookCreate(title="Dune"))


class TestBatchEnrichBooks:
    """Tests for batch_enrich_books."""

    @patch("readtrack.api.enrichment.time.sleep")
    def test_batch(self, mock_sleep):
        books = [
            BookCreate(title="Atomic Habits", authors=["James Clear"]),
            BookCreate(title="Has Everything", cover_url="https://img/x.jpg", page_count=10),
            BookCreate(title="Atomic Habits Again", authors=["James Clear"]),
        ]
        client = _client()

        enriched = batch_enrich_books(books, client=client, delay=0.5)

        assert [b.title for b in enriched] == [b.title for b in books]
        assert enriched[0].page_count == 320
        assert enriched[1] is books[1]
        assert client.search_by_title_author.call_count == 2
        mock_sleep.assert_called_with(0.5)

    @patch("readtrack.api.enrichment.time.sleep")
    def test_lookup_failure_keeps_book(self, mock_sleep):
        client = MagicMock()
        client.search_by_title_author.side_effect = GoogleBooksError("HTTP error: 503")
        books = [BookCreate(title="Dune", authors=["Frank Herbert"])]

        enriched = batch_enrich_books(books, client=client)

        assert enriched == books
