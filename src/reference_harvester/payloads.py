"""Validated shape of the records returned by the extraction service."""
from __future__ import annotations

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

from .models import Author, Extraction
from .normalization import normalize_text_field


def _split_author_name(name: str) -> "RawAuthor":
    parts = re.split(r",\s*", name.strip(), maxsplit=1)
    family = parts[0] if parts else ""
    given = parts[1] if len(parts) > 1 else ""
    return RawAuthor(family=family, given=given)


class RawAuthor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    family: str = ""
    given: str = ""


class RawExtraction(BaseModel):
    """One bibliography entry as reported by the extraction service."""

    model_config = ConfigDict(extra="ignore")

    complete: bool = True
    position: Optional[str] = None
    reason: Optional[str] = None

    doi: Optional[str] = None
    pmid: Optional[str] = None
    isbn: Optional[str] = None

    title: Optional[str] = None
    year: Optional[str] = None
    authors: List[RawAuthor] = []
    authors_truncated: bool = False
    container_title: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    raw_text: Optional[str] = None
    query_bibliographic: Optional[str] = None

    @field_validator("complete", "authors_truncated", mode="before")
    @classmethod
    def default_flags(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return info.field_name == "complete"
        return value

    @field_validator("position", mode="before")
    @classmethod
    def known_position(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        value = value.strip().lower()
        return value if value in {"start", "end"} else None

    @field_validator(
        "reason",
        "doi",
        "pmid",
        "isbn",
        "year",
        "volume",
        "issue",
        "pages",
        "raw_text",
        "query_bibliographic",
        mode="before",
    )
    @classmethod
    def coerce_scalar(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        text = str(value).strip()
        return text or None

    @field_validator("title", "container_title", mode="before")
    @classmethod
    def clean_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = normalize_text_field(str(value).strip())
        return text or None

    @field_validator("authors", mode="before")
    @classmethod
    def coerce_authors(cls, value: Any) -> List[Any]:
        if value is None:
            return []
        if isinstance(value, str):
            return [_split_author_name(name) for name in value.split(";") if name.strip()]
        if not isinstance(value, list):
            return []
        authors: List[Any] = []
        for item in value:
            if isinstance(item, str):
                if item.strip():
                    authors.append(_split_author_name(item))
            elif isinstance(item, dict):
                authors.append(
                    RawAuthor(
                        family=str(item.get("family") or item.get("lastName") or ""),
                        given=str(item.get("given") or item.get("firstName") or ""),
                    )
                )
        return authors

    def to_extraction(self, window_index: int) -> Extraction:
        """Build a processed extraction; identity is assigned later."""
        return Extraction(
            complete=self.complete,
            position=self.position if not self.complete else None,
            reason=self.reason if not self.complete else None,
            doi=self.doi,
            pmid=self.pmid,
            isbn=self.isbn,
            title=self.title,
            year=self.year,
            authors=[Author(family=a.family, given=a.given) for a in self.authors],
            authors_truncated=self.authors_truncated,
            container_title=self.container_title,
            volume=self.volume,
            issue=self.issue,
            pages=self.pages,
            raw_text=self.raw_text,
            query_bibliographic=self.query_bibliographic,
            window_index=window_index,
        )
