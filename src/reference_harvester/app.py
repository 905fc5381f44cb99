"""High-level orchestrator for citation harvesting runs."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

from .config import Settings
from .models import RunResult
from .parsers import DocumentParser
from .processor import Extractor, ProcessingCallbacks, process_all_windows
from .state import ExtractionState
from .validation import CitationValidator
from .windowing import create_windows, window_stats

logger = logging.getLogger(__name__)


class ReferenceHarvesterApp:
    """Coordinates document loading, windowing and the processing run."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        extractor: Optional[Extractor] = None,
        validator: Optional[CitationValidator] = None,
    ):
        self.settings = settings or Settings()
        self.parser = DocumentParser()
        self.extractor = extractor
        self.validator = validator
        self.state: Optional[ExtractionState] = None

    def cancel(self) -> None:
        """Ask the current run to stop at its next checkpoint."""
        if self.state is not None:
            self.state.token.cancel()

    async def process_text(
        self, text: str, callbacks: Optional[ProcessingCallbacks] = None
    ) -> Tuple[ExtractionState, RunResult]:
        state = ExtractionState(
            windows=create_windows(text, self.settings.window_size, self.settings.overlap)
        )
        self.state = state
        stats = window_stats(text, state.windows)
        logger.info(
            "Processing %d characters in %d windows (about %d characters each)",
            stats.total_chars,
            stats.window_count,
            stats.avg_chars_per_window,
        )
        result = await process_all_windows(
            state,
            self.settings,
            text,
            callbacks,
            extractor=self.extractor,
            validator=self.validator,
        )
        return state, result

    async def process_file(
        self,
        file_path: str | Path,
        references_only: bool = False,
        callbacks: Optional[ProcessingCallbacks] = None,
    ) -> Tuple[ExtractionState, RunResult]:
        """Load a TXT, DOCX or PDF file and process its text."""
        if references_only:
            text = self.parser.bibliography_text(file_path)
        else:
            text = self.parser.load_text(file_path)
        return await self.process_text(text, callbacks)
