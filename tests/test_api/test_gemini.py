"""Tests for the Gemini fallback parser."""

import json
from unittest.mock import MagicMock

import pytest
import requests

from readtrack.api.classify import Entry, classify_entries
from readtrack.api.gemini import GeminiParser, to_book_create
from readtrack.db.schemas import BookSource, BookStatus, ContentType
from readtrack.imports.base import FallbackParserError
from readtrack.imports.kobo import KoboImporter


def _gemini_response(text: str) -> MagicMock:
    response = MagicMock()
    response.raise_for_status = MagicMock()
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return response


@pytest.fixture
def parser():
    """Parser with a mocked HTTP session."""
    parser = GeminiParser(api_key="test-key")
    parser._session = MagicMock()
    return parser


class TestGeminiParser:
    """Tests for GeminiParser."""

    def test_requires_api_key(self):
        with pytest.raises(FallbackParserError):
            GeminiParser(api_key="")

    def test_parse(self, parser):
        items = [
            {"title": "Project Hail Mary", "author": "Andy Weir", "status": "100% read", "dateAdded": "12/18/2025"},
            {"title": "Lonely Planet Japan", "author": "Lonely Planet, Ray Bartlett +3", "status": "unread"},
            {"author": "No Title"},
        ]
        parser._session.post.return_value = _gemini_response("```json\n" + json.dumps(items) + "\n```")

        books = parser.parse("raw paste", "kobo")

        assert [b.title for b in books] == ["Project Hail Mary", "Lonely Planet Japan"]
        assert books[0].status == BookStatus.FINISHED
        assert books[0].date_finished == "2025-12-18"
        assert books[0].source == BookSource.KOBO
        assert books[1].authors == ["Lonely Planet", "Ray Bartlett"]
        assert books[1].status == BookStatus.TBD

        kwargs = parser._session.post.call_args.kwargs
        assert kwargs["params"] == {"key": "test-key"}
        assert "raw paste" in kwargs["json"]["contents"][0]["parts"][0]["text"]

    def test_no_json_array(self, parser):
        parser._session.post.return_value = _gemini_response("Sorry, I can't help with that.")

        with pytest.raises(FallbackParserError):
            parser.parse("raw paste")

    def test_invalid_json(self, parser):
        parser._session.post.return_value = _gemini_response("[{title: broken}]")

        with pytest.raises(FallbackParserError):
            parser.parse("raw paste")

    def test_http_error(self, parser):
        response = MagicMock()
        response.status_code = 429
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
        parser._session.post.return_value = response

        with pytest.raises(FallbackParserError, match="429"):
            parser.parse("raw paste")

    def test_connection_error(self, parser):
        parser._session.post.side_effect = requests.exceptions.ConnectionError("offline")

        with pytest.raises(FallbackParserError):
            parser.parse("raw paste")

    def test_classify(self, parser):
        parser._session.post.return_value = _gemini_response('["Book", "podcast"]')

        labels = parser.classify([Entry("Atomic Habits", "James Clear"), Entry("On Hell", "Undeceptions")])
        assert labels == ["book", "podcast"]

    def test_as_classification_lookup(self, parser):
        parser._session.post.return_value = _gemini_response('["podcast"]')
        entries = [Entry("Working Identity", "Herminia Ibarra"), Entry("Atomic Habits", "James Clear")]

        assert classify_entries(entries, parser) == [ContentType.PODCAST, ContentType.BOOK]

    def test_failure_during_classification_falls_back(self, parser):
        parser._session.post.side_effect = requests.exceptions.Timeout()
        entries = [Entry("Atomic Habits", "James Clear")]

        assert classify_entries(entries, parser) == [ContentType.BOOK]


class TestToBookCreate:
    """Tests for normalizing model output."""

    def test_progress_from_status(self):
        book = to_book_create({"title": "Dune", "author": "Frank Herbert", "status": "65% read"}, "kobo")

        assert book.progress == 65
        assert book.status == BookStatus.TBD

    def test_iso_date_accepted(self):
        book = to_book_create({"title": "Dune", "author": "Frank Herbert", "dateAdded": "2026-01-01"}, "kobo")
        assert book.date_added == "2026-01-01"

    def test_unknown_source_is_manual(self):
        book = to_book_create({"title": "Dune", "author": "Frank Herbert"}, "generic")
        assert book.source == BookSource.MANUAL

    def test_invalid_items_dropped(self):
        assert to_book_create("not a dict", "kobo") is None
        assert to_book_create({"title": "Dune", "progress": 250}, "kobo") is None


class TestKoboWithGeminiFallback:
    """The Kobo importer swaps in Gemini output on a broken parse."""

    def test_fallback(self, parser):
        items = [{"title": "Dune", "author": "Frank Herbert", "status": "unread", "dateAdded": "1/1/2026"}]
        parser._session.post.return_value = _gemini_response(json.dumps(items))
        garbage = "\n".join(f"Dune Frank Herbert Unread {n}" for n in range(12))

        books = KoboImporter(fallback=parser).parse_text(garbage)

        assert [b.title for b in books] == ["Dune"]
        assert books[0].date_added == "2026-01-01"
