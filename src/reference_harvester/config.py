"""Runtime settings for a processing run."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

from .prompt import DEFAULT_PROMPT
from .rate_limiter import (
    DEFAULT_EXTRACTION_RPM,
    DEFAULT_VALIDATION_CONCURRENCY,
    DEFAULT_VALIDATION_RPM,
)
from .windowing import DEFAULT_WINDOW_SIZE

logger = logging.getLogger(__name__)

DEFAULT_OVERLAP = 200
LLM_PROVIDERS = ("openai", "google")

DEFAULT_ENDPOINTS = {
    "openai": "https://api.openai.com/v1",
    "google": "https://generativelanguage.googleapis.com/v1beta",
}

ENV_PREFIX = "REFHARVEST_"
ENV_FIELDS = (
    "window_size",
    "overlap",
    "user_email",
    "llm_provider",
    "llm_endpoint",
    "llm_api_key",
    "llm_model",
    "max_llm_rpm",
    "max_validation_rpm",
)

_POSITIVE_DEFAULTS = {
    "window_size": DEFAULT_WINDOW_SIZE,
    "max_llm_rpm": DEFAULT_EXTRACTION_RPM,
    "max_validation_rpm": DEFAULT_VALIDATION_RPM,
    "validation_concurrency": DEFAULT_VALIDATION_CONCURRENCY,
}


class Settings(BaseModel):
    window_size: int = DEFAULT_WINDOW_SIZE
    overlap: int = DEFAULT_OVERLAP
    user_email: str = ""
    llm_provider: str = "google"
    llm_endpoint: str = ""
    llm_api_key: str = ""
    llm_model: str = ""
    extraction_prompt: str = DEFAULT_PROMPT
    max_llm_rpm: int = DEFAULT_EXTRACTION_RPM
    max_validation_rpm: int = DEFAULT_VALIDATION_RPM
    validation_concurrency: int = DEFAULT_VALIDATION_CONCURRENCY
    request_timeout: float = 30.0

    @field_validator(
        "window_size", "max_llm_rpm", "max_validation_rpm", "validation_concurrency", mode="before"
    )
    @classmethod
    def positive_or_default(cls, value: Any, info) -> int:
        fallback = _POSITIVE_DEFAULTS[info.field_name]
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return fallback
        return parsed if parsed > 0 else fallback

    @field_validator("overlap", mode="before")
    @classmethod
    def non_negative_overlap(cls, value: Any) -> int:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return DEFAULT_OVERLAP
        return max(parsed, 0)

    @field_validator("llm_provider", mode="before")
    @classmethod
    def known_provider(cls, value: Any) -> str:
        provider = str(value or "").strip().lower()
        if provider not in LLM_PROVIDERS:
            raise ValueError(f"llm_provider must be one of {', '.join(LLM_PROVIDERS)}")
        return provider

    @field_validator("extraction_prompt", mode="before")
    @classmethod
    def prompt_or_default(cls, value: Any) -> str:
        return value if isinstance(value, str) and value.strip() else DEFAULT_PROMPT

    def endpoint(self) -> str:
        return self.llm_endpoint.strip() or DEFAULT_ENDPOINTS[self.llm_provider]

    def is_llm_configured(self) -> bool:
        return bool(self.endpoint() and self.llm_api_key and self.llm_model)


def _env_values() -> Dict[str, str]:
    values: Dict[str, str] = {}
    for name in ENV_FIELDS:
        raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    return values


def load_settings(
    path: Optional[Path] = None, overrides: Optional[Dict[str, Any]] = None
) -> Settings:
    """Defaults, then a JSON file, then ``REFHARVEST_*`` variables, then overrides."""
    load_dotenv()
    values: Dict[str, Any] = {}

    if path is not None:
        try:
            raw = json.loads(Path(path).read_text())
        except FileNotFoundError:
            logger.warning("Settings file not found; using defaults: %s", path)
            raw = {}
        if isinstance(raw, dict):
            values.update(raw)
        else:
            logger.warning("Settings file is not a JSON object; ignoring: %s", path)

    values.update(_env_values())
    if overrides:
        values.update({key: value for key, value in overrides.items() if value is not None})

    return Settings(**values)
