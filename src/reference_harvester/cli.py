"""Command line interface for harvesting citations from a document."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List

from .app import ReferenceHarvesterApp
from .config import LLM_PROVIDERS, load_settings
from .logging_setup import configure_logging
from .models import Extraction, RunResult
from .processor import ProcessingCallbacks
from .report import render_report
from .state import ExtractionState

logger = logging.getLogger(__name__)


def _serialize_extraction(extraction: Extraction) -> Dict[str, Any]:
    match_score = None
    if extraction.validation and extraction.validation.match_score:
        match_score = asdict(extraction.validation.match_score)
    return {
        "id": extraction.id,
        "index": extraction.index,
        "window_index": extraction.window_index,
        "complete": extraction.complete,
        "doi": extraction.doi,
        "pmid": extraction.pmid,
        "isbn": extraction.isbn,
        "title": extraction.title,
        "year": extraction.year,
        "authors": [asdict(author) for author in extraction.authors],
        "authors_truncated": extraction.authors_truncated,
        "container_title": extraction.container_title,
        "volume": extraction.volume,
        "issue": extraction.issue,
        "pages": extraction.pages,
        "raw_text": extraction.raw_text,
        "error": extraction.error,
        "error_message": extraction.error_message,
        "validation_status": extraction.validation_status,
        "validation_message": extraction.validation_message,
        "match_score": match_score,
        "line_start": extraction.absolute_line_start,
        "line_end": extraction.absolute_line_end,
    }


def _build_result(state: ExtractionState, result: RunResult) -> Dict[str, Any]:
    return {
        "run": asdict(result),
        "windows": len(state.windows),
        "extractions": [
            _serialize_extraction(e) for e in sorted(state.extractions, key=lambda item: item.index)
        ],
    }


def _progress_callbacks() -> ProcessingCallbacks:
    def on_error(window_number: int, message: str, _extraction: Extraction) -> None:
        print(f"Window {window_number} failed: {message}", file=sys.stderr)

    return ProcessingCallbacks(
        on_progress=lambda message: print(message, file=sys.stderr),
        on_error=on_error,
    )


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Extract and verify bibliography citations")
    parser.add_argument("input", help="Path to a text, DOCX, or PDF file")
    parser.add_argument("--config", type=Path, help="JSON settings file")
    parser.add_argument("--window-size", type=int, help="Characters per extraction window")
    parser.add_argument("--overlap", type=int, help="Characters shared by adjacent windows")
    parser.add_argument("--email", help="Contact email sent to Crossref and OpenAlex")
    parser.add_argument("--provider", choices=LLM_PROVIDERS, help="Language model provider")
    parser.add_argument("--model", help="Language model name")
    parser.add_argument("--endpoint", help="Override the provider API endpoint")
    parser.add_argument(
        "--references-only",
        action="store_true",
        help="Only process text after a References/Bibliography heading",
    )
    parser.add_argument(
        "--json-output",
        type=Path,
        help="Write extractions and the run summary to a JSON file",
    )
    parser.add_argument("--log-level", help="Enable logging at this level (e.g. INFO, DEBUG)")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    settings = load_settings(
        args.config,
        overrides={
            "window_size": args.window_size,
            "overlap": args.overlap,
            "user_email": args.email,
            "llm_provider": args.provider,
            "llm_model": args.model,
            "llm_endpoint": args.endpoint,
        },
    )
    if not settings.is_llm_configured():
        print(
            "Language model is not configured: set REFHARVEST_LLM_API_KEY and REFHARVEST_LLM_MODEL "
            "or provide them in --config.",
            file=sys.stderr,
        )
        return 2

    harvester = ReferenceHarvesterApp(settings=settings)
    state, result = asyncio.run(
        harvester.process_file(
            Path(args.input),
            references_only=args.references_only,
            callbacks=_progress_callbacks(),
        )
    )

    report = render_report(state, result)
    print(report)

    if args.json_output:
        args.json_output.write_text(json.dumps(_build_result(state, result), indent=2))
        logger.info("Wrote JSON results to %s", args.json_output)

    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    raise SystemExit(main())
