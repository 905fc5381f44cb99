"""Matching and merging of citations cut at window boundaries."""
from __future__ import annotations

from .models import Extraction
from .normalization import normalize_doi, normalize_isbn

MIN_TITLE_OVERLAP = 10
TITLE_PREFIX_LENGTH = 15

_LONGER_TEXT_FIELDS = ("title", "container_title", "query_bibliographic")
_FILL_IN_FIELDS = ("doi", "pmid", "isbn", "year", "volume", "issue", "pages")


def extractions_match_by_fields(first: Extraction, second: Extraction) -> bool:
    """Loose identity check: any single agreeing field is enough.

    Adjacent windows are read by the same extraction service, so partial
    records of one entry agree on whatever fields both of them carry.
    """
    if first.doi and second.doi and normalize_doi(first.doi) == normalize_doi(second.doi):
        return True

    if first.pmid and second.pmid and str(first.pmid) == str(second.pmid):
        return True

    if first.isbn and second.isbn and normalize_isbn(first.isbn) == normalize_isbn(second.isbn):
        return True

    author_a = first.first_author_family()
    author_b = second.first_author_family()
    if author_a and author_b and author_a == author_b:
        return True

    if first.title and second.title:
        title_a = first.title.lower().strip()
        title_b = second.title.lower().strip()
        min_len = min(len(title_a), len(title_b))
        if min_len >= MIN_TITLE_OVERLAP:
            if title_a in title_b or title_b in title_a:
                return True
            check_len = min(TITLE_PREFIX_LENGTH, min_len)
            if title_a[:check_len] == title_b[:check_len]:
                return True

    if first.year and second.year and first.container_title and second.container_title:
        if (
            str(first.year) == str(second.year)
            and first.container_title.lower() == second.container_title.lower()
        ):
            return True

    return False


def extractions_overlap(first: Extraction, second: Extraction) -> bool:
    """True when two incomplete halves of the same entry should be merged."""
    if first.error or second.error:
        return False
    if first.complete or second.complete:
        return False
    complementary = {first.position, second.position} == {"start", "end"}
    if not complementary:
        return False
    return extractions_match_by_fields(first, second)


def complete_supersedes(incomplete_end: Extraction, complete: Extraction) -> bool:
    """True when a later complete capture replaces a pending ``end`` fragment."""
    if incomplete_end.error or complete.error:
        return False
    if incomplete_end.complete or incomplete_end.position != "end":
        return False
    if not complete.complete:
        return False
    return extractions_match_by_fields(incomplete_end, complete)


def merge_extractions(first: Extraction, second: Extraction) -> Extraction:
    """Merge a cut pair into the ``end`` side, which keeps its identity."""
    if first.position == "end":
        primary, secondary = first, second
    else:
        primary, secondary = second, first

    primary.complete = True
    primary.reason = None
    primary.position = None

    if primary.raw_text and secondary.raw_text:
        primary.raw_text = f"{primary.raw_text}\n{secondary.raw_text}"
    elif not primary.raw_text and secondary.raw_text:
        primary.raw_text = secondary.raw_text

    for name in _LONGER_TEXT_FIELDS:
        ours = getattr(primary, name)
        theirs = getattr(secondary, name)
        if theirs and (not ours or len(theirs) > len(ours)):
            setattr(primary, name, theirs)

    for name in _FILL_IN_FIELDS:
        if not getattr(primary, name) and getattr(secondary, name):
            setattr(primary, name, getattr(secondary, name))

    if len(secondary.authors) > len(primary.authors):
        primary.authors = list(secondary.authors)

    primary.authors_truncated = primary.authors_truncated or secondary.authors_truncated
    return primary
