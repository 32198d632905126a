"""Fuzzy book identity matching.

Decides whether two records refer to the same underlying book using:
1. ISBN equality (definitive, short-circuits everything else)
2. An author gate: at least one author pair must agree
3. A title ladder tried in order of increasing risk:
   exact normalized title, core title, containment, token overlap

Every function accepts pydantic models, ORM-like objects or plain dicts
exposing ``title``, ``authors`` and ``isbn``.
"""

import re
from typing import Any, Optional

# Minimum lengths guarding the riskier title rules against short-string collisions
MIN_CORE_TITLE_LENGTH = 3
MIN_CONTAINMENT_LENGTH = 5
MIN_FUZZY_CORE_LENGTH = 5
MIN_LAST_NAME_LENGTH = 3
FUZZY_THRESHOLD = 0.7

_EDITION_PAREN = re.compile(r"\([^)]*\b(edition|version|ed\.)[^)]*\)", re.IGNORECASE)
_GOODREADS_AUTHOR = re.compile(r"\(goodreads author\)", re.IGNORECASE)
_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_SUBTITLE_SPLIT = re.compile(r"[:\-–—]")

# Honorifics and generational/professional suffixes dropped from author names
_AUTHOR_NOISE = {
    "jr", "sr", "phd", "md", "dr", "mr", "mrs", "ms", "prof",
    "ii", "iii", "iv",
}


def _field(record: Any, name: str, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def record_authors(record: Any) -> list[str]:
    """Authors of a record as a list, whatever its shape."""
    authors = _field(record, "authors")
    if authors is None:
        getter = getattr(record, "get_authors", None)
        authors = getter() if callable(getter) else []
    if isinstance(authors, str):
        authors = [authors]
    return [a for a in authors if a]


def _collapse(text: str) -> str:
    text = _PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize_title(title: str) -> str:
    """Lowercase, drop edition and Goodreads-author annotations, strip punctuation.

    Example:
        >>> normalize_title("Dune (Deluxe Edition)")
        'dune'
    """
    if not title:
        return ""
    title = _EDITION_PAREN.sub(" ", title)
    title = _GOODREADS_AUTHOR.sub(" ", title)
    return _collapse(title.lower())


def core_title(title: str) -> str:
    """Title portion before the first colon or dash, normalized.

    Example:
        >>> core_title("Life 3.0: Being Human in the Age of Artificial Intelligence")
        'life 30'
    """
    if not title:
        return ""
    title = _EDITION_PAREN.sub(" ", title)
    title = _GOODREADS_AUTHOR.sub(" ", title)
    head = _SUBTITLE_SPLIT.split(title, maxsplit=1)[0]
    return _collapse(head.lower())


def normalize_author(author: str) -> str:
    """Lowercase, strip punctuation, honorifics and suffixes."""
    if not author:
        return ""
    # Dots dropped first so "Ph.D." and "J.R.R." collapse to single tokens
    tokens = _collapse(author.lower().replace(".", "")).split()
    return " ".join(t for t in tokens if t not in _AUTHOR_NOISE)


def last_name(author: str) -> str:
    """Last whitespace-delimited token of a normalized author name."""
    normalized = normalize_author(author)
    return normalized.split()[-1] if normalized else ""


def authors_match(authors_a: list[str], authors_b: list[str]) -> bool:
    """True if any author of one record agrees with any author of the other.

    Agreement is full normalized equality or containment, falling back to
    last-name equality when the shared last name has at least three letters.
    """
    normalized_a = [normalize_author(a) for a in authors_a]
    normalized_b = [normalize_author(b) for b in authors_b]

    for a in normalized_a:
        for b in normalized_b:
            if not a or not b:
                continue
            if a == b or a in b or b in a:
                return True

    for a in normalized_a:
        for b in normalized_b:
            if not a or not b:
                continue
            last_a, last_b = a.split()[-1], b.split()[-1]
            if last_a == last_b and len(last_a) >= MIN_LAST_NAME_LENGTH:
                return True

    return False


def title_similarity(a: str, b: str) -> float:
    """Token overlap between two normalized strings, from 0.0 to 1.0.

    If one string contains the other, the length ratio is used instead.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return min(len(a), len(b)) / max(len(a), len(b))

    words_a, words_b = set(a.split()), set(b.split())
    return len(words_a & words_b) / max(len(words_a), len(words_b))


def _clean_isbn(isbn: Optional[str]) -> str:
    if not isbn:
        return ""
    return str(isbn).replace("-", "").replace(" ", "").strip().upper()


def titles_match(title_a: str, title_b: str) -> bool:
    """Apply the title ladder; first rule that succeeds wins."""
    full_a, full_b = normalize_title(title_a), normalize_title(title_b)
    if full_a and full_a == full_b:
        return True

    core_a, core_b = core_title(title_a), core_title(title_b)
    if core_a == core_b and len(core_a) >= MIN_CORE_TITLE_LENGTH:
        return True

    if len(full_a) >= MIN_CONTAINMENT_LENGTH and len(full_b) >= MIN_CONTAINMENT_LENGTH:
        if full_a in full_b or full_b in full_a:
            return True

    if len(core_a) >= MIN_FUZZY_CORE_LENGTH and len(core_b) >= MIN_FUZZY_CORE_LENGTH:
        if title_similarity(core_a, core_b) >= FUZZY_THRESHOLD:
            return True

    return False


def is_same_book(a: Any, b: Any) -> bool:
    """Check if two records are likely the same book.

    Example:
        >>> is_same_book(
        ...     {"title": "Foo", "authors": ["A"], "isbn": "123"},
        ...     {"title": "Bar", "authors": ["B"], "isbn": "123"},
        ... )
        True
    """
    isbn_a, isbn_b = _clean_isbn(_field(a, "isbn")), _clean_isbn(_field(b, "isbn"))
    if isbn_a and isbn_b and isbn_a == isbn_b:
        return True

    if not authors_match(record_authors(a), record_authors(b)):
        return False

    return titles_match(_field(a, "title", "") or "", _field(b, "title", "") or "")


def dedupe_key(title: str, author: str) -> str:
    """Cheap bucket key: core title plus first normalized author.

    Only an approximation of identity; callers must still confirm with
    ``is_same_book``.
    """
    first_author = (author or "").split(",")[0]
    return f"{core_title(title)}|{normalize_author(first_author)}"
