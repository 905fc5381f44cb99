"""Windowed citation extraction and verification toolkit."""

from .app import ReferenceHarvesterApp
from .config import Settings, load_settings
from .models import Extraction, RunResult, Window
from .processor import ProcessingCallbacks, process_all_windows
from .state import CancellationToken, ExtractionState
from .validation import CitationValidator

__all__ = [
    "ReferenceHarvesterApp",
    "Settings",
    "load_settings",
    "Extraction",
    "RunResult",
    "Window",
    "ProcessingCallbacks",
    "process_all_windows",
    "CancellationToken",
    "ExtractionState",
    "CitationValidator",
]
