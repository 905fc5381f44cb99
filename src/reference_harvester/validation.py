"""Verification of extracted citations against Crossref and OpenAlex."""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from .crossref import CrossrefClient, normalize_crossref
from .metadata import AuthorityError
from .models import Extraction, MatchScore, NormalizedRecord, ValidationDetails
from .openalex import OpenAlexClient, normalize_openalex
from .similarity import compute_match_score, verdict_for_score

logger = logging.getLogger(__name__)

QUERY_TITLE_WORDS = 5
NOT_VERIFIED_MESSAGE = "Could not verify citation"


def _parse_year(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else None


def normalize_extracted(citation: Extraction) -> NormalizedRecord:
    return NormalizedRecord(
        title=citation.title or "",
        authors=list(citation.authors),
        year=_parse_year(citation.year),
        journal=citation.container_title or "",
        volume=citation.volume or "",
        pages=citation.pages or "",
        doi=citation.doi or "",
    )


def build_bibliographic_query(citation: Extraction) -> str:
    """Compose a free-text query from first author, year, title words and venue."""
    parts: List[str] = []
    if citation.authors and citation.authors[0].family:
        parts.append(citation.authors[0].family)
    if citation.year:
        parts.append(str(citation.year))
    if citation.title:
        parts.append(" ".join(citation.title.split()[:QUERY_TITLE_WORDS]))
    if citation.container_title:
        parts.append(citation.container_title)
    return " ".join(parts)


def find_best_match(
    citation: Extraction, results: List[Dict[str, Any]]
) -> Optional[Tuple[Dict[str, Any], MatchScore]]:
    """Return the search result scoring highest against ``citation``."""
    extracted = normalize_extracted(citation)
    best: Optional[Tuple[Dict[str, Any], MatchScore]] = None
    for result in results:
        normalized = normalize_crossref(result)
        if normalized is None:
            continue
        score = compute_match_score(extracted, normalized)
        if best is None or score.overall > best[1].overall:
            best = (result, score)
    return best


class CitationValidator:
    """Assign a verdict by consulting the authorities in a fixed order.

    DOI lookups run against both authorities at once; PMID lookups go to
    OpenAlex; everything else falls back to a Crossref bibliographic search.
    The first step that returns any record decides the verdict.
    """

    def __init__(
        self,
        crossref: Optional[CrossrefClient] = None,
        openalex: Optional[OpenAlexClient] = None,
        user_email: str = "",
    ):
        self.crossref = crossref or CrossrefClient()
        self.openalex = openalex or OpenAlexClient()
        self.user_email = user_email

    async def aclose(self) -> None:
        await self.crossref.aclose()
        await self.openalex.aclose()

    @staticmethod
    async def _quietly(lookup: Awaitable[Optional[Dict[str, Any]]], label: str) -> Optional[Dict[str, Any]]:
        # a failed identifier lookup counts as no record; later steps still run
        try:
            return await lookup
        except Exception as exc:
            logger.debug("%s failed: %s", label, exc)
            return None

    @staticmethod
    def _apply(
        citation: Extraction,
        details: ValidationDetails,
        normalized: Optional[NormalizedRecord],
        method: str,
    ) -> None:
        score = compute_match_score(normalize_extracted(citation), normalized or NormalizedRecord())
        details.match_score = score
        citation.validation_status, citation.validation_message = verdict_for_score(score, method)

    async def validate(self, citation: Extraction) -> Extraction:
        details = ValidationDetails()
        citation.validation = details

        if citation.doi:
            crossref_record, openalex_record = await asyncio.gather(
                self._quietly(
                    self.crossref.lookup_doi(citation.doi, self.user_email), "CrossRef DOI lookup"
                ),
                self._quietly(
                    self.openalex.lookup_doi(citation.doi, self.user_email), "OpenAlex DOI lookup"
                ),
            )
            if crossref_record:
                details.crossref = crossref_record
                if openalex_record:
                    details.openalex = openalex_record
                self._apply(citation, details, normalize_crossref(crossref_record), "DOI verified via CrossRef")
                return citation
            if openalex_record:
                details.openalex = openalex_record
                self._apply(citation, details, normalize_openalex(openalex_record), "DOI verified via OpenAlex")
                return citation

        if citation.pmid:
            openalex_record = await self._quietly(
                self.openalex.lookup_pmid(citation.pmid, self.user_email), "OpenAlex PMID lookup"
            )
            if openalex_record:
                details.openalex = openalex_record
                self._apply(citation, details, normalize_openalex(openalex_record), "PMID verified via OpenAlex")
                return citation

        if citation.query_bibliographic or citation.raw_text:
            query = (
                citation.query_bibliographic
                or build_bibliographic_query(citation)
                or (citation.raw_text or "").strip()
            )
            try:
                results = await self.crossref.search_bibliographic(query, self.user_email)
            except AuthorityError as exc:
                logger.warning("Bibliographic search failed for %s: %s", citation.id, exc)
                results = []
            match = find_best_match(citation, results)
            if match:
                record, score = match
                details.crossref = record
                details.match_score = score
                citation.validation_status, citation.validation_message = verdict_for_score(
                    score, "Matched via bibliographic search"
                )
                return citation

        citation.validation_status = "invalid"
        citation.validation_message = NOT_VERIFIED_MESSAGE
        return citation
