"""Removal of citations captured twice from overlapping windows."""
from __future__ import annotations

import logging
from typing import Set

from .models import Extraction
from .normalization import normalize_doi, normalize_isbn
from .similarity import string_similarity
from .state import ExtractionState

logger = logging.getLogger(__name__)

DUPLICATE_TITLE_SIMILARITY = 0.8

STATUS_POINTS = {
    "valid": 100,
    "suspicious": 50,
    "incomplete": 10,
    "invalid": 5,
}


def extractions_are_duplicates(first: Extraction, second: Extraction) -> bool:
    """Strict identity check used after all windows are processed.

    Without a shared identifier, title, first author and year must all agree;
    a missed duplicate is preferred over merging two different works.
    """
    if first.doi and second.doi:
        return normalize_doi(first.doi) == normalize_doi(second.doi)
    if first.pmid and second.pmid and str(first.pmid) == str(second.pmid):
        return True
    if first.isbn and second.isbn and normalize_isbn(first.isbn) == normalize_isbn(second.isbn):
        return True

    if not first.title or not second.title:
        return False
    title_a = first.title.lower().strip()
    title_b = second.title.lower().strip()
    if string_similarity(title_a, title_b) < DUPLICATE_TITLE_SIMILARITY:
        return False

    if not first.authors or not second.authors:
        return False
    author_a = first.first_author_family()
    author_b = second.first_author_family()
    if not author_a or not author_b or author_a != author_b:
        return False

    if first.year and second.year and str(first.year) != str(second.year):
        return False

    return True


def score_extraction(extraction: Extraction) -> float:
    """Quality score; the higher-scoring member of a duplicate pair is kept."""
    score = float(STATUS_POINTS.get(extraction.validation_status or "", 0))

    if extraction.complete:
        score += 50

    if extraction.doi:
        score += 30
    if extraction.pmid:
        score += 20
    if extraction.isbn:
        score += 20

    if extraction.title:
        score += 10
    if extraction.year:
        score += 5
    if extraction.container_title:
        score += 5
    for name in ("volume", "issue", "pages"):
        if getattr(extraction, name):
            score += 3

    if extraction.authors:
        score += min(len(extraction.authors) * 2, 10)

    # later windows tend to see more surrounding context
    score += (extraction.window_index or 0) * 0.1
    return score


def deduplicate_extractions(state: ExtractionState) -> int:
    """Drop the weaker member of every duplicate pair; return how many went."""
    # ties keep the lower index, whatever order validations finished in
    extractions = sorted(state.extractions, key=lambda extraction: extraction.index)
    if len(extractions) < 2:
        return 0

    to_remove: Set[str] = set()
    for i, first in enumerate(extractions):
        if first.error or first.id in to_remove:
            continue
        for second in extractions[i + 1 :]:
            if second.error or second.id in to_remove:
                continue
            if not extractions_are_duplicates(first, second):
                continue
            if score_extraction(first) >= score_extraction(second):
                to_remove.add(second.id)
            else:
                to_remove.add(first.id)
                break

    if not to_remove:
        return 0

    logger.info("Removing %d duplicate extraction(s): %s", len(to_remove), sorted(to_remove))
    state.extractions = [e for e in state.extractions if e.id not in to_remove]
    state.processing_results = [e for e in state.processing_results if e.id not in to_remove]
    return len(to_remove)
