"""Window-by-window extraction run with cross-window merging.

Windows are extracted one at a time, in order, through a sequential
limiter. Citations cut at the end of a window wait as *pending* entries
until the next window either continues them (merge), captures them whole
(supersede) or does neither (finalized as incomplete). Finalized citations
are validated concurrently through a second limiter; the run returns once
every validation has settled.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional

from .config import Settings
from .crossref import CrossrefClient
from .dedup import deduplicate_extractions
from .llm_client import extract_citations_from_window
from .locator import build_line_extraction_map
from .matcher import complete_supersedes, extractions_overlap, merge_extractions
from .models import Extraction, RunResult, Window
from .openalex import OpenAlexClient
from .payloads import RawExtraction
from .rate_limiter import create_extraction_rate_limiter, create_validation_rate_limiter
from .state import ExtractionState, add_extraction, create_error_extraction
from .validation import CitationValidator

logger = logging.getLogger(__name__)

Extractor = Callable[[Settings, Window], Awaitable[List[RawExtraction]]]

INCOMPLETE_MESSAGE = "Entry incomplete"


@dataclass
class ProcessingCallbacks:
    """Observers of a run. A callback that raises is logged and ignored."""

    on_progress: Optional[Callable[[str], Any]] = None
    on_window_start: Optional[Callable[[int, int], Any]] = None
    on_extraction_complete: Optional[Callable[[Extraction], Any]] = None
    on_error: Optional[Callable[[int, str, Extraction], Any]] = None

    def emit(self, name: str, *args: Any) -> None:
        callback = getattr(self, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Callback %s failed", name)


class _Run:
    """Mutable bookkeeping for one call to :func:`process_all_windows`."""

    def __init__(self, state: ExtractionState, settings: Settings, callbacks: ProcessingCallbacks, validator):
        self.state = state
        self.settings = settings
        self.callbacks = callbacks
        self.validator = validator
        self.validation_limiter = create_validation_rate_limiter(
            settings.max_validation_rpm, settings.validation_concurrency
        )
        self.next_index = 0
        self.pending: List[Extraction] = []
        self.validations: List[asyncio.Future] = []

    async def _finalize(self, citation: Extraction) -> None:
        if self.state.should_cancel:
            return
        if not citation.complete:
            citation.validation_status = "incomplete"
            citation.validation_message = citation.reason or INCOMPLETE_MESSAGE
        else:
            try:
                await self.validator.validate(citation)
            except Exception as exc:
                logger.warning("Validation of %s failed: %s", citation.id, exc)
                citation.validation_status = "invalid"
                citation.validation_message = f"Validation failed: {exc}"
        add_extraction(self.state, citation)
        self.callbacks.emit("on_extraction_complete", citation)

    def start_validation(self, citation: Extraction) -> None:
        task = functools.partial(self._finalize, citation)
        self.validations.append(asyncio.ensure_future(self.validation_limiter.schedule(task)))

    def take_identity(self, citation: Extraction) -> None:
        citation.assign_identity(self.next_index)
        self.next_index += 1

    def flush_pending(self) -> None:
        for pending in self.pending:
            self.start_validation(pending)
        self.pending = []

    def record_window_error(self, window_number: int, message: str) -> None:
        self.flush_pending()
        error_extraction = create_error_extraction(self.next_index, window_number, message)
        self.next_index += 1
        add_extraction(self.state, error_extraction)
        self.callbacks.emit("on_error", window_number, message, error_extraction)

    def _matching_pending(self, fragment: Extraction) -> Optional[Extraction]:
        for pending in self.pending:
            if extractions_overlap(pending, fragment):
                return pending
        return None

    def _supersede(self, complete: Extraction) -> None:
        for position in range(len(self.pending) - 1, -1, -1):
            if complete_supersedes(self.pending[position], complete):
                superseded = self.pending.pop(position)
                logger.debug("%s superseded by a complete capture", superseded.id)
                break

    def handle_window(self, raw_citations: List[RawExtraction], window_number: int, is_last: bool) -> None:
        carried: List[Extraction] = []

        for raw in raw_citations:
            if self.state.should_cancel:
                break
            citation = raw.to_extraction(window_number)

            if not citation.complete and citation.position == "start":
                match = self._matching_pending(citation)
                if match is not None:
                    merge_extractions(match, citation)
                    self.pending.remove(match)
                    logger.debug("Merged window %d fragment into %s", window_number, match.id)
                    self.start_validation(match)
                    continue

            if not citation.complete and citation.position == "end" and not is_last:
                self.take_identity(citation)
                carried.append(citation)
                continue

            if citation.complete:
                self._supersede(citation)

            self.take_identity(citation)
            self.start_validation(citation)

        # unmatched fragments from the previous window are final now
        self.flush_pending()
        self.pending = carried


async def process_all_windows(
    state: ExtractionState,
    settings: Settings,
    full_text: str,
    callbacks: Optional[ProcessingCallbacks] = None,
    *,
    extractor: Optional[Extractor] = None,
    validator: Optional[CitationValidator] = None,
) -> RunResult:
    """Extract, merge, validate and deduplicate citations over ``state.windows``."""
    callbacks = callbacks or ProcessingCallbacks()
    extractor = extractor or extract_citations_from_window
    owns_validator = validator is None
    validator = validator or CitationValidator(
        CrossrefClient(timeout=settings.request_timeout),
        OpenAlexClient(timeout=settings.request_timeout),
        user_email=settings.user_email,
    )

    extraction_limiter = create_extraction_rate_limiter(settings.max_llm_rpm)
    run = _Run(state, settings, callbacks, validator)
    total = len(state.windows)
    state.is_processing = True

    try:
        for position, window in enumerate(state.windows):
            if state.should_cancel:
                break
            window_number = position + 1
            callbacks.emit("on_window_start", position, total)
            callbacks.emit("on_progress", f"Window {window_number}/{total}: Extracting...")

            try:
                raw_citations = await extraction_limiter.schedule(
                    functools.partial(extractor, settings, window)
                )
            except Exception as exc:
                logger.warning("Window %d failed: %s", window_number, exc)
                run.record_window_error(window_number, str(exc))
                continue

            run.handle_window(raw_citations, window_number, is_last=position == total - 1)

        if not state.should_cancel:
            run.flush_pending()

        if run.validations:
            callbacks.emit("on_progress", f"Finishing {len(run.validations)} validations...")
            outcomes = await asyncio.gather(*run.validations, return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    logger.warning("Validation task failed: %s", outcome)
    finally:
        state.is_processing = False
        if owns_validator:
            await validator.aclose()

    removed = deduplicate_extractions(state)
    build_line_extraction_map(state, full_text)

    return RunResult(
        total_extractions=len(state.extractions),
        cancelled=state.should_cancel,
        duplicates_removed=removed,
    )


__all__ = ["ProcessingCallbacks", "process_all_windows"]
