"""Tests for the Google Books API client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from readtrack.api.googlebooks import (
    GoogleBooksClient,
    GoogleBooksError,
    GoogleBooksRateLimitError,
    Volume,
    title_variants,
)

ATOMIC_HABITS_ITEM = {
    "id": "XfFvDwAAQBAJ",
    "volumeInfo": {
        "title": "Atomic Habits",
        "authors": ["James Clear"],
        "publisher": "Penguin",
        "publishedDate": "2018-10-16",
        "description": "Tiny changes, remarkable results.",
        "pageCount": 320,
        "categories": ["Self-Help"],
        "imageLinks": {
            "smallThumbnail": "http://books.google.com/books/content?id=X&zoom=5",
            "thumbnail": "http://books.google.com/books/content?id=X&zoom=1&edge=curl",
        },
        "industryIdentifiers": [
            {"type": "ISBN_10", "identifier": "0735211299"},
            {"type": "ISBN_13", "identifier": "9780735211292"},
        ],
    },
}


def _response(payload: dict) -> MagicMock:
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


def _http_error(status_code: int) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response


class TestVolume:
    """Tests for Volume parsing."""

    def test_from_api(self):
        volume = Volume.from_api(ATOMIC_HABITS_ITEM)

        assert volume.title == "Atomic Habits"
        assert volume.authors == ["James Clear"]
        assert volume.page_count == 320
        assert volume.year == 2018
        assert volume.isbn == "9780735211292"

    def test_cover_url(self):
        """Largest image, https, zoomed, no page curl."""
        volume = Volume.from_api(ATOMIC_HABITS_ITEM)
        assert volume.cover_url == "https://books.google.com/books/content?id=X&zoom=2"

    def test_missing_fields(self):
        volume = Volume.from_api({"id": "x", "volumeInfo": {"title": "Bare"}})

        assert volume.cover_url is None
        assert volume.year is None
        assert volume.isbn is None

    def test_isbn10_fallback(self):
        volume = Volume(id="x", title="T", identifiers={"ISBN_10": "0735211299"})
        assert volume.isbn == "0735211299"


class TestTitleVariants:
    """Tests for search title variants."""

    def test_subtitle_and_parens_removed(self):
        assert title_variants("Atomic Habits: An Easy & Proven Way (Enhanced Edition)") == ["Atomic Habits"]

    def test_punctuation_variant(self):
        assert title_variants("What If? (Illustrated)") == [
            "What If",
            "What If?",
            "What If? (Illustrated)",
        ]

    def test_short_variants_dropped(self):
        assert title_variants("It") == []


class TestGoogleBooksClient:
    """Tests for GoogleBooksClient."""

    @pytest.fixture
    def client(self):
        """Client with a mocked session and no rate-limit wait."""
        client = GoogleBooksClient(min_interval=0)
        client._session = MagicMock()
        return client

    def test_search_by_isbn(self, client):
        client._session.get.return_value = _response({"totalItems": 1, "items": [ATOMIC_HABITS_ITEM]})

        volume = client.search_by_isbn("978-0-7352-1129-2")

        assert volume.title == "Atomic Habits"
        params = client._session.get.call_args.kwargs["params"]
        assert params["q"] == "isbn:9780735211292"

    def test_search_by_isbn_no_results(self, client):
        client._session.get.return_value = _response({"totalItems": 0})
        assert client.search_by_isbn("0000000000") is None

    def test_search_prefers_exact_title(self, client):
        other = {"id": "y", "volumeInfo": {"title": "Summary of Atomic Habits"}}
        client._session.get.return_value = _response({"items": [other, ATOMIC_HABITS_ITEM]})

        volume = client.search_by_title_author("Atomic Habits", "James Clear")

        assert volume.id == "XfFvDwAAQBAJ"
        params = client._session.get.call_args.kwargs["params"]
        assert params["q"] == "intitle:Atomic Habits inauthor:James Clear"

    def test_search_falls_back_to_first_result(self, client):
        other = {"id": "y", "volumeInfo": {"title": "Something Else"}}
        client._session.get.return_value = _response({"items": [other]})

        assert client.search_by_title_author("Atomic Habits").id == "y"

    def test_api_key_sent(self):
        client = GoogleBooksClient(api_key="secret", min_interval=0)
        client._session = MagicMock()
        client._session.get.return_value = _response({"totalItems": 0})

        client.search_by_isbn("123")
        assert client._session.get.call_args.kwargs["params"]["key"] == "secret"

    def test_rate_limited(self, client):
        client._session.get.return_value = _http_error(429)

        with pytest.raises(GoogleBooksRateLimitError):
            client.search_by_isbn("123")

    def test_http_error(self, client):
        client._session.get.return_value = _http_error(500)

        with pytest.raises(GoogleBooksError, match="500"):
            client.search_by_isbn("123")

    def test_timeout(self, client):
        client._session.get.side_effect = requests.exceptions.Timeout()

        with pytest.raises(GoogleBooksError, match="timed out"):
            client.search_by_isbn("123")

    def test_exists(self, client):
        client._session.get.return_value = _response({"totalItems": 3})
        assert client.exists("Atomic Habits", "James Clear, Someone")

        params = client._session.get.call_args.kwargs["params"]
        assert params["q"] == "intitle:Atomic Habits inauthor:James Clear"

    def test_exists_tries_title_only(self, client):
        client._session.get.side_effect = [
            _response({"totalItems": 0}),
            _response({"totalItems": 2}),
        ]
        assert client.exists("Atomic Habits", "Wrong Person")
        assert client._session.get.call_count == 2

    def test_exists_raises_when_lookups_fail(self, client):
        """An outage is not the same as "not a book"."""
        client._session.get.side_effect = requests.exceptions.ConnectionError("offline")

        with pytest.raises(GoogleBooksError):
            client.exists("Atomic Habits", "James Clear")

    def test_exists_survives_one_failed_attempt(self, client):
        client._session.get.side_effect = [
            requests.exceptions.Timeout(),
            _response({"totalItems": 1}),
        ]
        assert client.exists("Atomic Habits", "James Clear")

    def test_exists_false_without_variants(self, client):
        assert client.exists("It") is False
        client._session.get.assert_not_called()

    @patch("readtrack.api.googlebooks.time.sleep")
    def test_rate_limit_sleeps(self, mock_sleep):
        client = GoogleBooksClient(min_interval=10)
        client._session = MagicMock()
        client._session.get.return_value = _response({"totalItems": 0})

        client.search_by_isbn("1")
        client.search_by_isbn("2")

        assert mock_sleep.called
