"""Best-effort mapping of extractions back to lines of the source text."""
from __future__ import annotations

import re
from typing import Optional, Tuple

from .models import Extraction
from .state import ExtractionState

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_ENUMERATED = re.compile(r"^\d+[.)]")

MIN_RAW_TEXT = 20
RAW_HEAD_CHARS = 80
RAW_TAIL_CHARS = 40
RAW_END_ESTIMATE = 100
MIN_TITLE = 15
MIN_AUTHOR = 3

Span = Tuple[int, int]


def char_pos_to_line(text: str, char_pos: int) -> int:
    """1-based line number of ``char_pos``; ``\\r\\n`` counts as one break."""
    if not text or char_pos <= 0:
        return 1
    return len(_LINE_BREAK.findall(text[:char_pos])) + 1


def _is_break(char: str) -> bool:
    return char in ("\n", "\r")


def _match_raw_text(raw_text: str, text_lower: str) -> Optional[Span]:
    raw_lower = raw_text.lower().strip()
    pos = text_lower.find(raw_lower)
    if pos >= 0:
        return pos, pos + len(raw_lower)

    head = raw_lower[:RAW_HEAD_CHARS]
    pos = text_lower.find(head)
    if pos < 0:
        return None
    tail = raw_lower[max(0, len(raw_lower) - RAW_TAIL_CHARS) :]
    end_pos = text_lower.find(tail, pos)
    if end_pos >= pos:
        return pos, end_pos + len(tail)
    return pos, pos + len(head) + RAW_END_ESTIMATE


def _around_doi(doi: str, full_text: str, text_lower: str) -> Optional[Span]:
    doi_lower = doi.lower()
    pos = text_lower.find(doi_lower)
    if pos < 0:
        return None

    start = pos
    for i in range(pos - 1, max(0, pos - 500) - 1, -1):
        if _is_break(full_text[i]):
            after = full_text[i + 1 : i + 10].strip()
            if _ENUMERATED.match(after) or not after:
                start = i + 1
                break

    end = pos + len(doi_lower)
    for i in range(end, min(len(full_text), end + 200)):
        if _is_break(full_text[i]):
            next_char = full_text[i + 1] if i + 1 < len(full_text) else ""
            if not next_char or next_char.isdigit() or _is_break(next_char):
                end = i
                break
    return start, end


def _expand_to_entry(full_text: str, pos: int, back: int, forward_from: int, forward: int) -> Span:
    start = pos
    for i in range(pos - 1, max(0, pos - back) - 1, -1):
        if _is_break(full_text[i]):
            start = i + 1
            break

    end = forward_from
    for i in range(forward_from, min(len(full_text), forward_from + forward)):
        if _is_break(full_text[i]):
            if _ENUMERATED.match(full_text[i + 1 : i + 5].strip()):
                end = i
                break
        end = i
    return start, end


def _around_title(title: str, full_text: str, text_lower: str) -> Optional[Span]:
    title_lower = title.lower().strip()
    pos = text_lower.find(title_lower)
    if pos < 0:
        return None
    return _expand_to_entry(full_text, pos, 300, pos + len(title_lower), 400)


def _around_author_year(family: str, year: str, full_text: str, text_lower: str) -> Optional[Span]:
    author_pos = text_lower.find(family)
    if author_pos < 0:
        return None
    if year not in text_lower[author_pos : author_pos + 500]:
        return None
    return _expand_to_entry(full_text, author_pos, 100, author_pos, 500)


def find_extraction_in_text(extraction: Extraction, full_text: str) -> Optional[Span]:
    """Return the ``(start, end)`` character span of ``extraction``, if found.

    Strategies are tried in order: raw text, DOI, title, then first author
    near the year. Error records and low-information records stay unlocated.
    """
    if not full_text or extraction.error:
        return None

    text_lower = full_text.lower()

    if extraction.raw_text and len(extraction.raw_text) >= MIN_RAW_TEXT:
        span = _match_raw_text(extraction.raw_text, text_lower)
        if span:
            return span

    if extraction.doi:
        span = _around_doi(extraction.doi, full_text, text_lower)
        if span:
            return span

    if extraction.title and len(extraction.title) >= MIN_TITLE:
        span = _around_title(extraction.title, full_text, text_lower)
        if span:
            return span

    if extraction.authors and extraction.year:
        family = (extraction.authors[0].family or "").lower()
        if len(family) >= MIN_AUTHOR:
            return _around_author_year(family, str(extraction.year), full_text, text_lower)

    return None


def build_line_extraction_map(state: ExtractionState, full_text: str) -> None:
    """Rebuild the id and line indices from the current extraction list."""
    state.extraction_map.clear()
    state.line_to_extractions.clear()

    for extraction in state.extractions:
        state.extraction_map[extraction.id] = extraction

        span = find_extraction_in_text(extraction, full_text)
        if not span:
            continue

        start_line = char_pos_to_line(full_text, span[0])
        end_line = char_pos_to_line(full_text, span[1])
        extraction.absolute_line_start = start_line
        extraction.absolute_line_end = end_line
        for line in range(start_line, end_line + 1):
            state.line_to_extractions.setdefault(line, set()).add(extraction.id)
