"""Gemini-backed fallback parser and classifier.

Used when heuristic parsing of a pasted library clearly failed (see
``is_suspicious_parse``) and, optionally, to classify Readwise entries.
The model is asked for a JSON array; anything else is an error.
"""

import json
import logging
import re
from typing import Optional, Sequence

import requests
from pydantic import ValidationError

from ..db.schemas import BookCreate, BookSource, BookStatus
from ..imports.base import FallbackParserError
from ..imports.kobo import parse_kobo_date, split_kobo_authors
from .classify import Entry

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.0-flash"

SOURCE_HINTS = {
    "kobo": (
        'This is from Kobo library. Skip "Buy Now" or "Preview" items. '
        'Status may be concatenated with date like "Unread1/1/2026".'
    ),
    "kindle": 'This is from Kindle library. Format is usually "Title\\nAuthor" pairs.',
    "generic": "Parse any book data format.",
}

PARSE_PROMPT = """Parse this book library data into a JSON array. Each book should have:
- title (string, required)
- author (string, required - combine multiple authors with comma)
- series (string, optional - e.g. "Travel Guide", "Book 1")
- genre (string, optional)
- status (string, optional - "unread", "X% read", "100% read/played", "finished")
- progress (number 0-100, optional - extract from status like "65% read")
- dateAdded (string, optional - M/D/YYYY or YYYY-MM-DD format)

{hint}

Raw data:
{text}

Return ONLY a valid JSON array, no explanation. Example format:
[{{"title": "Book Title", "author": "Author Name", "genre": "Nonfiction", "status": "unread", "dateAdded": "1/1/2026"}}]"""

CLASSIFY_PROMPT = """Classify each entry as "book", "podcast" or "article".

book = a published book you can buy in a bookstore, written by a person.
podcast = a podcast episode or video; the author is usually a show name.
article = a newsletter post, online guide chapter or web article.

Entries to classify:
{entries}

Return ONLY a JSON array of {count} strings, one per entry, in order.
Example format: ["book", "podcast", "book"]"""

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_PERCENT = re.compile(r"(\d+)%")


class GeminiParser:
    """Fallback parser using the Gemini generateContent API."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, timeout: int = 60):
        """Initialize parser.

        Args:
            api_key: Gemini API key
            model: Model name
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise FallbackParserError("Gemini API key not configured")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._session = requests.Session()

    def _generate(self, prompt: str) -> str:
        """Send a prompt and return the text of the first candidate."""
        try:
            response = self._session.post(
                GEMINI_URL.format(model=self.model),
                params={"key": self.api_key},
                json={"contents": [{"parts": [{"text": prompt}]}]},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise FallbackParserError(f"Gemini API error: {status}") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise FallbackParserError(f"Gemini request failed: {e}") from e

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return ""

    def _json_array(self, content: str) -> list:
        match = _JSON_ARRAY.search(content)
        if not match:
            raise FallbackParserError("No JSON array in Gemini response")
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise FallbackParserError(f"Invalid JSON in Gemini response: {e}") from e
        if not isinstance(parsed, list):
            raise FallbackParserError("Gemini response is not a JSON array")
        return parsed

    def parse(self, text: str, source: str = "generic") -> list[BookCreate]:
        """Parse messy library text into candidates.

        Raises:
            FallbackParserError: If the API fails or returns no usable JSON
        """
        prompt = PARSE_PROMPT.format(hint=SOURCE_HINTS.get(source, SOURCE_HINTS["generic"]), text=text)
        items = self._json_array(self._generate(prompt))

        books = []
        for item in items:
            book = to_book_create(item, source)
            if book is not None:
                books.append(book)
        logger.info("Gemini parsed %d of %d items", len(books), len(items))
        return books

    def classify(self, entries: Sequence[Entry]) -> list[str]:
        """Label entries as book, podcast or article (raw model output)."""
        listing = "\n".join(f'{i}. "{e.title}" by "{e.author}"' for i, e in enumerate(entries))
        prompt = CLASSIFY_PROMPT.format(entries=listing, count=len(entries))
        return [str(label).lower() for label in self._json_array(self._generate(prompt))]

    __call__ = classify


def _progress(item: dict) -> Optional[int]:
    progress = item.get("progress")
    if isinstance(progress, (int, float)) and not isinstance(progress, bool):
        return int(progress)
    match = _PERCENT.search(str(item.get("status") or ""))
    return int(match.group(1)) if match else None


def to_book_create(item: dict, source: str) -> Optional[BookCreate]:
    """Normalize one model-returned book the same way the Kobo parser does."""
    if not isinstance(item, dict) or not item.get("title"):
        return None

    progress = _progress(item)
    finished = progress == 100
    date_added = parse_kobo_date(str(item.get("dateAdded") or ""))
    if date_added is None and re.match(r"^\d{4}-\d{2}-\d{2}$", str(item.get("dateAdded") or "")):
        date_added = item["dateAdded"]

    try:
        return BookCreate(
            title=str(item["title"]),
            authors=split_kobo_authors(str(item.get("author") or "")),
            status=BookStatus.FINISHED if finished else BookStatus.TBD,
            progress=progress,
            source=source if source in ("kobo", "kindle") else BookSource.MANUAL,
            date_added=date_added,
            date_finished=date_added if finished else None,
        )
    except ValidationError as e:
        logger.debug("Dropping Gemini item %r: %s", item.get("title"), e)
        return None
