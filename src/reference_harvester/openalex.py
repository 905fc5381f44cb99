"""OpenAlex lookups and response normalization."""
from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

from .metadata import AuthorityClient, AuthorityError
from .models import Author, NormalizedRecord


class OpenAlexClient(AuthorityClient):
    name = "OpenAlex"
    base_url = "https://api.openalex.org"

    async def lookup_doi(self, doi: str, user_email: str = "") -> Optional[Dict[str, Any]]:
        full_doi = doi if doi.startswith("http") else f"https://doi.org/{doi}"
        url = f"{self.base_url}/works/{quote(full_doi, safe='')}"
        return await self._get_json(url, self._params(user_email))

    async def lookup_pmid(self, pmid: str, user_email: str = "") -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/works/pmid:{quote(str(pmid).strip(), safe='')}"
        return await self._get_json(url, self._params(user_email))


def _split_display_name(name: str) -> Author:
    parts = name.split()
    if not parts:
        return Author()
    return Author(family=parts[-1], given=" ".join(parts[:-1]))


def normalize_openalex(record: Optional[Dict[str, Any]]) -> Optional[NormalizedRecord]:
    if not record:
        return None

    biblio = record.get("biblio") or {}
    first_page = biblio.get("first_page") or ""
    last_page = biblio.get("last_page") or ""
    pages = f"{first_page}-{last_page}" if first_page and last_page else first_page

    authors = []
    for authorship in record.get("authorships") or []:
        author = (authorship or {}).get("author") or {}
        authors.append(_split_display_name(author.get("display_name") or ""))

    source = ((record.get("primary_location") or {}).get("source") or {})
    try:
        year = int(record.get("publication_year") or 0) or None
    except (TypeError, ValueError):
        year = None

    return NormalizedRecord(
        title=record.get("title") or "",
        authors=authors,
        year=year,
        journal=source.get("display_name") or "",
        volume=str(biblio.get("volume") or ""),
        pages=str(pages),
        doi=(record.get("doi") or "").replace("https://doi.org/", ""),
    )


__all__ = ["AuthorityError", "OpenAlexClient", "normalize_openalex"]
