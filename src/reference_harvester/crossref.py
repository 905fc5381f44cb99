"""Crossref lookups and response normalization."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .metadata import AuthorityClient, AuthorityError
from .models import Author, NormalizedRecord

SEARCH_ROWS = 5


class CrossrefClient(AuthorityClient):
    """Minimal async client for the Crossref works API."""

    name = "CrossRef"
    base_url = "https://api.crossref.org"

    async def lookup_doi(self, doi: str, user_email: str = "") -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/works/{quote(doi, safe='')}"
        data = await self._get_json(url, self._params(user_email))
        if not data:
            return None
        return data.get("message")

    async def search_bibliographic(self, query: str, user_email: str = "") -> List[Dict[str, Any]]:
        params = self._params(user_email, {"query.bibliographic": query, "rows": SEARCH_ROWS})
        data = await self._get_json(f"{self.base_url}/works", params, allow_missing=False)
        message = (data or {}).get("message") or {}
        return list(message.get("items") or [])[:SEARCH_ROWS]


def _first_value(value: Any) -> str:
    if isinstance(value, list) and value:
        return str(value[0] or "")
    if isinstance(value, str):
        return value
    return ""


def _date_year(value: Any) -> Optional[int]:
    if not isinstance(value, dict):
        return None
    parts = value.get("date-parts") or []
    if parts and parts[0] and parts[0][0]:
        try:
            return int(parts[0][0])
        except (TypeError, ValueError):
            return None
    return None


def normalize_crossref(record: Optional[Dict[str, Any]]) -> Optional[NormalizedRecord]:
    if not record:
        return None

    authors = [
        Author(family=author.get("family") or "", given=author.get("given") or "")
        for author in record.get("author") or []
        if isinstance(author, dict)
    ]
    year = _date_year(record.get("published-print")) or _date_year(record.get("issued"))

    return NormalizedRecord(
        title=_first_value(record.get("title")),
        authors=authors,
        year=year,
        journal=_first_value(record.get("container-title")),
        volume=str(record.get("volume") or ""),
        pages=str(record.get("page") or ""),
        doi=str(record.get("DOI") or ""),
    )


__all__ = ["AuthorityError", "CrossrefClient", "SEARCH_ROWS", "normalize_crossref"]
