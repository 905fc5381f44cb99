"""Normalization helpers for identifiers and extracted text fields."""
from __future__ import annotations

import re

_QUOTE_CHARS = frozenset(
    [
        '"',
        "'",
        "“",
        "”",
        "‘",
        "’",
        "«",
        "»",
        "`",
        "″",
        "′",
    ]
)

_ESCAPED_QUOTES = (
    ('\\"', '"'),
    ("\\'", "'"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&#34;", '"'),
    ("&#39;", "'"),
)

_PAGE_RANGE = re.compile(r"(\d+)[-–](\d+)")


def normalize_doi(doi: str | None) -> str:
    """Lowercase a DOI and drop resolver prefixes."""
    if not doi:
        return ""
    value = doi.strip().lower()
    value = re.sub(r"^https?://(dx\.)?doi\.org/", "", value)
    value = value.replace("doi:", "")
    return value.strip()


def normalize_isbn(isbn: str | None) -> str:
    if not isbn:
        return ""
    return re.sub(r"[-\s]", "", isbn)


def strip_quotes(value: str | None) -> str | None:
    """Remove any run of quote characters from both ends of ``value``."""
    if not value:
        return value
    start, end = 0, len(value)
    while start < end and value[start] in _QUOTE_CHARS:
        start += 1
    while end > start and value[end - 1] in _QUOTE_CHARS:
        end -= 1
    return value[start:end]


def normalize_text_field(value: str | None) -> str | None:
    """Unescape quote entities and strip surrounding quotes from a text field."""
    if not value:
        return value
    for escaped, plain in _ESCAPED_QUOTES:
        value = value.replace(escaped, plain)
    return strip_quotes(value)


def normalize_pages(pages: object) -> str:
    """Expand abbreviated page ranges, e.g. ``806-14`` becomes ``806-814``."""
    text = str(pages)
    match = _PAGE_RANGE.search(text)
    if not match:
        return text.strip()
    start = int(match.group(1))
    end = int(match.group(2))
    if end < start:
        start_str = str(start)
        end_str = str(end)
        end = int(start_str[: len(start_str) - len(end_str)] + end_str)
    return f"{start}-{end}"
