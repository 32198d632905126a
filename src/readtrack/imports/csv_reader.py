"""Tolerant CSV reader shared by the CSV-based importers.

Exports from reading apps routinely contain quoted fields with embedded
commas and newlines, mixed line endings and the occasional unbalanced
quote. The reader never raises: an unterminated quote simply keeps the
rest of the text inside the current field.
"""

from typing import Iterable


def read_csv_rows(text: str) -> list[list[str]]:
    """Split CSV text into rows of trimmed field strings.

    - ``"`` toggles quoting; ``""`` inside a quoted field is a literal quote
    - ``,`` separates fields outside quotes
    - ``\\n``, ``\\r\\n`` and bare ``\\r`` end a row outside quotes
    - rows whose fields are all empty are dropped

    Example:
        >>> read_csv_rows('a,"b, c"\\r\\n"x ""y"" z",w')
        [['a', 'b, c'], ['x "y" z', 'w']]
    """
    rows: list[list[str]] = []
    row: list[str] = []
    current: list[str] = []
    in_quotes = False

    def end_field() -> None:
        row.append("".join(current).strip())
        current.clear()

    def end_row() -> None:
        end_field()
        if any(row):
            rows.append(list(row))
        row.clear()

    i = 0
    length = len(text)
    while i < length:
        char = text[i]

        if char == '"':
            if in_quotes and i + 1 < length and text[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif in_quotes:
            current.append(char)
        elif char == ",":
            end_field()
        elif char == "\r":
            if i + 1 < length and text[i + 1] == "\n":
                i += 1
            end_row()
        elif char == "\n":
            end_row()
        else:
            current.append(char)
        i += 1

    if current or row:
        end_row()

    return rows


def looks_like_header(row: Iterable[str], keywords: Iterable[str], minimum: int = 2) -> bool:
    """Check whether a first row reads like a header rather than data.

    True when at least ``minimum`` of the keywords appear (case-insensitive)
    somewhere in the row.
    """
    joined = " ".join(row).lower()
    hits = sum(1 for keyword in keywords if keyword.lower() in joined)
    return hits >= minimum
