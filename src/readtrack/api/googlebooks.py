"""Google Books API client for metadata lookup.

Google Books (googleapis.com/books) provides free volume metadata:
- ISBN lookup
- Title/author search
- Cover images, page counts, categories

An API key is optional; without one requests are more aggressively
rate limited.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class GoogleBooksError(Exception):
    """Base exception for Google Books API errors."""

    pass


class GoogleBooksRateLimitError(GoogleBooksError):
    """Raised when rate limited by Google Books."""

    pass


# Largest first
IMAGE_SIZES = ("large", "medium", "small", "thumbnail", "smallThumbnail")

MIN_VARIANT_LENGTH = 3


@dataclass
class Volume:
    """A volume returned by Google Books."""

    id: str
    title: str
    authors: list[str] = field(default_factory=list)
    publisher: Optional[str] = None
    published_date: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    categories: list[str] = field(default_factory=list)
    image_links: dict[str, str] = field(default_factory=dict)
    identifiers: dict[str, str] = field(default_factory=dict)  # ISBN_13 -> value

    @classmethod
    def from_api(cls, item: dict) -> "Volume":
        info = item.get("volumeInfo", {})
        return cls(
            id=item.get("id", ""),
            title=info.get("title", ""),
            authors=info.get("authors", []),
            publisher=info.get("publisher"),
            published_date=info.get("publishedDate"),
            description=info.get("description"),
            page_count=info.get("pageCount"),
            categories=info.get("categories", []),
            image_links=info.get("imageLinks", {}),
            identifiers={
                ident["type"]: ident["identifier"]
                for ident in info.get("industryIdentifiers", [])
                if "type" in ident and "identifier" in ident
            },
        )

    @property
    def cover_url(self) -> Optional[str]:
        """Largest cover over HTTPS, zoomed in, without the page-curl effect."""
        url = next((self.image_links[size] for size in IMAGE_SIZES if self.image_links.get(size)), None)
        if not url:
            return None
        return (
            url.replace("http://", "https://")
            .replace("zoom=1", "zoom=2")
            .replace("&edge=curl", "")
        )

    @property
    def year(self) -> Optional[int]:
        match = re.match(r"^(\d{4})", self.published_date or "")
        return int(match.group(1)) if match else None

    @property
    def isbn(self) -> Optional[str]:
        return self.identifiers.get("ISBN_13") or self.identifiers.get("ISBN_10")


def title_variants(title: str) -> list[str]:
    """Search variants of a title, most specific cleanup first.

    Example:
        >>> title_variants('Atomic Habits: An Easy & Proven Way (Enhanced Edition)')
        ['Atomic Habits']
    """
    original = re.sub(r"[\"']", "", title).strip()
    main_title = original.split(":")[0].strip()
    without_parens = re.sub(r"\s*\([^)]*\)\s*$", "", main_title).strip()
    cleaned = re.sub(r"[?!.,]", "", without_parens).strip()

    variants = []
    for variant in (cleaned, without_parens, main_title):
        if len(variant) >= MIN_VARIANT_LENGTH and variant not in variants:
            variants.append(variant)
    return variants


class GoogleBooksClient:
    """Client for the Google Books volumes API."""

    BASE_URL = "https://www.googleapis.com/books/v1/volumes"

    def __init__(self, api_key: Optional[str] = None, timeout: int = 10, min_interval: float = 0.2):
        """Initialize client.

        Args:
            api_key: Optional Google API key
            timeout: Request timeout in seconds
            min_interval: Minimum seconds between requests
        """
        self.api_key = api_key
        self.timeout = timeout
        self._session = requests.Session()
        self._last_request_time = 0.0
        self._min_request_interval = min_interval

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    def _get(self, params: dict) -> dict:
        """Make GET request with error handling."""
        if self.api_key:
            params = {**params, "key": self.api_key}

        self._rate_limit()
        try:
            response = self._session.get(self.BASE_URL, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout:
            raise GoogleBooksError("Request timed out")
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code == 429:
                raise GoogleBooksRateLimitError("Rate limited by Google Books")
            status = e.response.status_code if e.response is not None else "unknown"
            raise GoogleBooksError(f"HTTP error: {status}")
        except requests.exceptions.RequestException as e:
            raise GoogleBooksError(f"Request failed: {e}")

    @staticmethod
    def _query(title: str, author: Optional[str] = None) -> str:
        query = f"intitle:{title}"
        if author:
            query += f" inauthor:{author}"
        return query

    # ========================================================================
    # Search Operations
    # ========================================================================

    def search_by_isbn(self, isbn: str) -> Optional[Volume]:
        """Look up a single volume by ISBN.

        Args:
            isbn: ISBN-10 or ISBN-13, separators allowed

        Returns:
            The first matching volume, or None
        """
        clean = re.sub(r"[-\s]", "", isbn)
        data = self._get({"q": f"isbn:{clean}", "maxResults": 1})
        items = data.get("items") or []
        return Volume.from_api(items[0]) if items else None

    def search_by_title_author(self, title: str, author: Optional[str] = None) -> Optional[Volume]:
        """Search by title (and author), preferring an exact or prefix title match.

        Args:
            title: Book title
            author: Optional author name

        Returns:
            Best matching volume, or None
        """
        data = self._get({"q": self._query(title, author), "maxResults": 5})
        volumes = [Volume.from_api(item) for item in data.get("items") or []]
        if not volumes:
            return None

        wanted = title.lower().strip()
        for volume in volumes:
            found = volume.title.lower().strip()
            if found == wanted or found.startswith(wanted):
                return volume
        return volumes[0]

    def _has_results(self, title: str, author: Optional[str] = None) -> bool:
        data = self._get({"q": self._query(title, author), "maxResults": 1})
        return (data.get("totalItems") or 0) > 0

    def exists(self, title: str, author: Optional[str] = None) -> bool:
        """Check whether a title (and author) resolves to a real book.

        Each title variant is tried with the first author, then title only.
        A failed attempt moves on to the next one.

        Raises:
            GoogleBooksError: No attempt found the book and at least one
                failed, so the answer is unknown.
        """
        author_name = author.split(",")[0].strip() if author else None
        attempts = []
        for variant in title_variants(title):
            if author_name:
                attempts.append((variant, author_name))
            attempts.append((variant, None))

        last_error: Optional[GoogleBooksError] = None
        for variant, name in attempts:
            try:
                if self._has_results(variant, name):
                    return True
            except GoogleBooksError as e:
                logger.debug("Google Books lookup for %r failed: %s", variant, e)
                last_error = e

        if last_error is not None:
            raise last_error
        return False
