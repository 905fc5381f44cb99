"""Field similarity scoring between extracted citations and authority records.

``FIELD_WEIGHTS`` and ``THRESHOLDS`` decide how strict verification is. A
field only takes part in a comparison when both records carry a value for
it; absent fields shrink the divisor, not the weighted sum.
"""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .models import Author, MatchScore, NormalizedRecord
from .normalization import normalize_pages

FIELD_WEIGHTS: Dict[str, float] = {
    "title": 10.0,
    "authors": 8.0,
    "year": 6.0,
    "journal": 0.5,
    "volume": 0.2,
    "pages": 0.2,
}

THRESHOLDS: Dict[str, float] = {
    "valid": 0.90,
    "suspicious": 0.70,
}

FIRST_AUTHOR_WEIGHT = 0.7
LAST_AUTHOR_WEIGHT = 0.3


def string_similarity(first: Optional[str], second: Optional[str]) -> float:
    """Jaccard overlap of the lowercased whitespace-separated tokens."""
    if not first or not second:
        return 0.0
    words_a = set(first.lower().split())
    words_b = set(second.lower().split())
    intersection = len(words_a & words_b)
    union = len(words_a) + len(words_b) - intersection
    return intersection / union if union else 0.0


def compare_authors(extracted: List[Author], validated: List[Author]) -> float:
    if not extracted or not validated:
        return 0.0

    first_ext = (extracted[0].family or "").lower()
    first_val = (validated[0].family or "").lower()
    if not first_ext or not first_val:
        return 0.0

    first_sim = string_similarity(first_ext, first_val)
    if len(extracted) > 1 and len(validated) > 1:
        last_ext = (extracted[-1].family or "").lower()
        last_val = (validated[-1].family or "").lower()
        last_sim = string_similarity(last_ext, last_val)
        return first_sim * FIRST_AUTHOR_WEIGHT + last_sim * LAST_AUTHOR_WEIGHT
    return first_sim


def compare_pages(first: object, second: object) -> float:
    if not first or not second:
        return 0.0
    return 1.0 if normalize_pages(first) == normalize_pages(second) else 0.0


def compute_match_score(extracted: NormalizedRecord, validated: NormalizedRecord) -> MatchScore:
    fields: Dict[str, float] = {}

    if extracted.title and validated.title:
        fields["title"] = string_similarity(extracted.title, validated.title)
    if extracted.authors and validated.authors:
        fields["authors"] = compare_authors(extracted.authors, validated.authors)
    if extracted.year and validated.year:
        fields["year"] = 1.0 if extracted.year == validated.year else 0.0
    if extracted.journal and validated.journal:
        fields["journal"] = string_similarity(extracted.journal, validated.journal)
    if extracted.volume and validated.volume:
        fields["volume"] = 1.0 if str(extracted.volume) == str(validated.volume) else 0.0
    if extracted.pages and validated.pages:
        fields["pages"] = compare_pages(extracted.pages, validated.pages)

    total_weight = sum(FIELD_WEIGHTS[name] for name in fields)
    weighted_sum = sum(score * FIELD_WEIGHTS[name] for name, score in fields.items())
    overall = weighted_sum / total_weight if total_weight > 0 else 0.0
    return MatchScore(overall=overall, fields=fields, fields_compared=len(fields))


def verdict_for_score(score: MatchScore, lookup_method: str) -> Tuple[str, str]:
    """Map an overall score onto a ``(status, message)`` verdict."""
    percent = int(score.overall * 100 + 0.5)
    if score.overall >= THRESHOLDS["valid"]:
        return "valid", f"{lookup_method} ({percent}% match)"
    if score.overall >= THRESHOLDS["suspicious"]:
        return "suspicious", f"{lookup_method} - possible mismatch ({percent}% match)"
    return "mismatch", f"{lookup_method} - content mismatch ({percent}% match)"
