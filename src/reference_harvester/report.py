"""Plain-text summaries of a processing run."""
from __future__ import annotations

from collections import Counter

from .models import VALIDATION_STATUSES, RunResult
from .state import ExtractionState

STATUS_ORDER = VALIDATION_STATUSES


def render_report(state: ExtractionState, result: RunResult) -> str:
    """Return a human-readable report of the extractions and their verdicts."""

    header_lines = ["Reference Extraction Report"]
    header_lines.append(f"Windows processed: {len(state.windows)}")
    header_lines.append(f"Extractions: {result.total_extractions}")
    if result.duplicates_removed:
        header_lines.append(f"Duplicates removed: {result.duplicates_removed}")
    if result.cancelled:
        header_lines.append("Run cancelled before completion.")

    if not state.extractions:
        header_lines.append("No citations extracted.")
        return "\n".join(header_lines)

    counts = Counter(extraction.validation_status or "pending" for extraction in state.extractions)
    summary = ", ".join(f"{status}: {counts[status]}" for status in STATUS_ORDER if counts[status])
    header_lines.append(f"Verdicts: {summary}")

    lines = header_lines + ["Citations:"]
    for extraction in sorted(state.extractions, key=lambda item: item.index):
        status = (extraction.validation_status or "pending").upper()
        if extraction.error:
            lines.append(f"[{status}] {extraction.id}: window {extraction.window_index} failed -> {extraction.error_message}")
            continue
        label = extraction.title or (extraction.raw_text or "").strip()[:80] or "(untitled)"
        if extraction.year:
            label += f" ({extraction.year})"
        line = f"[{status}] {extraction.id}: {label}"
        if extraction.validation_message:
            line += f" -> {extraction.validation_message}"
        lines.append(line)
    return "\n".join(lines)
