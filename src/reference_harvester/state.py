"""Per-run extraction state and cancellation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set

from .models import Extraction, Window


class CancellationToken:
    """Cooperative cancellation flag shared by a processing run."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ExtractionState:
    """Everything a processing run accumulates.

    ``extraction_map`` and ``line_to_extractions`` are derived from
    ``extractions`` by :func:`reference_harvester.locator.build_line_extraction_map`.
    """

    windows: List[Window] = field(default_factory=list)
    extractions: List[Extraction] = field(default_factory=list)
    processing_results: List[Extraction] = field(default_factory=list)
    extraction_map: Dict[str, Extraction] = field(default_factory=dict)
    line_to_extractions: Dict[int, Set[str]] = field(default_factory=dict)
    is_processing: bool = False
    token: CancellationToken = field(default_factory=CancellationToken)

    @property
    def should_cancel(self) -> bool:
        return self.token.cancelled


def add_extraction(state: ExtractionState, extraction: Extraction) -> None:
    state.extractions.append(extraction)
    state.processing_results.append(extraction)


def create_error_extraction(index: int, window_index: int, error_message: str) -> Extraction:
    extraction = Extraction(
        complete=True,
        window_index=window_index,
        error=True,
        error_message=error_message,
        validation_status="invalid",
        validation_message=error_message,
    )
    extraction.assign_identity(index)
    return extraction
