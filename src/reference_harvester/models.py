"""Data models for windowed citation extraction and verification."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

COLOR_COUNT = 6

VALIDATION_STATUSES = ("valid", "suspicious", "mismatch", "invalid", "incomplete")


@dataclass(frozen=True)
class Window:
    """A half-open character range ``[start, end)`` of the source text."""

    index: int
    start: int
    end: int
    length: int
    text: str


@dataclass
class Author:
    family: str = ""
    given: str = ""


@dataclass
class MatchScore:
    """Weighted comparison between an extracted citation and an external record."""

    overall: float
    fields: Dict[str, float] = field(default_factory=dict)
    fields_compared: int = 0


@dataclass
class NormalizedRecord:
    """Common shape for extracted citations and authority records before scoring."""

    title: str = ""
    authors: List[Author] = field(default_factory=list)
    year: Optional[int] = None
    journal: str = ""
    volume: str = ""
    pages: str = ""
    doi: str = ""


@dataclass
class ValidationDetails:
    """Raw authority records and the score computed against them."""

    crossref: Optional[Dict[str, Any]] = None
    openalex: Optional[Dict[str, Any]] = None
    match_score: Optional[MatchScore] = None


@dataclass
class Extraction:
    """A citation extracted from one window, tracked through merge and validation."""

    complete: bool = True
    position: Optional[str] = None
    reason: Optional[str] = None
    doi: Optional[str] = None
    pmid: Optional[str] = None
    isbn: Optional[str] = None
    title: Optional[str] = None
    year: Optional[str] = None
    authors: List[Author] = field(default_factory=list)
    authors_truncated: bool = False
    container_title: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    raw_text: Optional[str] = None
    query_bibliographic: Optional[str] = None

    id: str = ""
    index: int = 0
    window_index: int = 0
    color_index: int = 0

    error: bool = False
    error_message: Optional[str] = None

    validation_status: Optional[str] = None
    validation_message: Optional[str] = None
    validation: Optional[ValidationDetails] = None

    absolute_line_start: Optional[int] = None
    absolute_line_end: Optional[int] = None

    def assign_identity(self, index: int) -> None:
        """Give the extraction its run-unique id and sequence index."""
        self.id = f"extraction-{index}"
        self.index = index
        self.color_index = index % COLOR_COUNT

    def first_author_family(self) -> str:
        if not self.authors:
            return ""
        return (self.authors[0].family or "").strip().lower()


@dataclass
class WindowStats:
    total_chars: int
    window_count: int
    avg_chars_per_window: int


@dataclass
class RunResult:
    """Summary returned by a processing run."""

    total_extractions: int
    cancelled: bool
    duplicates_removed: int = 0
