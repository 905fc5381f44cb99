"""Split source text into overlapping character windows."""
from __future__ import annotations

from typing import List

from .models import Window, WindowStats

DEFAULT_WINDOW_SIZE = 2000


def create_windows(text: str, window_size: int, overlap: int) -> List[Window]:
    """Return overlapping windows covering ``text`` from start to end.

    The step between windows is ``window_size - overlap``. When the tail left
    after a step is shorter than the step itself, a single final window is
    anchored to the end of the text instead, so the last window is full-sized
    unless the whole text is shorter than ``window_size``.
    """
    if not text or not text.strip():
        return []

    if window_size <= 0:
        window_size = DEFAULT_WINDOW_SIZE
    if overlap < 0:
        overlap = 0
    if overlap >= window_size:
        overlap = window_size - 1

    text_length = len(text)
    step = window_size - overlap
    windows: List[Window] = []
    start = 0

    while start < text_length:
        end = min(start + window_size, text_length)
        windows.append(_make_window(text, len(windows), start, end))
        start += step

        if start < text_length and text_length - start < step:
            final_start = max(0, text_length - window_size)
            if final_start > windows[-1].start:
                windows.append(_make_window(text, len(windows), final_start, text_length))
            break

    return windows


def _make_window(text: str, index: int, start: int, end: int) -> Window:
    return Window(index=index, start=start, end=end, length=end - start, text=text[start:end])


def window_stats(text: str, windows: List[Window]) -> WindowStats:
    total = sum(window.length for window in windows)
    return WindowStats(
        total_chars=len(text) if text else 0,
        window_count=len(windows),
        avg_chars_per_window=round(total / len(windows)) if windows else 0,
    )
