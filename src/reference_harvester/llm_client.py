"""Calls to the language-model service that turns a window into citations."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional

import httpx
from pydantic import ValidationError

from .config import DEFAULT_ENDPOINTS, Settings
from .models import Window
from .payloads import RawExtraction
from .prompt import render_prompt

logger = logging.getLogger(__name__)

TEMPERATURE = 0.1
_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


class ExtractionError(RuntimeError):
    """Raised when the extraction service fails or returns unusable output."""


def default_endpoint(provider: str) -> str:
    return DEFAULT_ENDPOINTS.get(provider, "")


def _raise_for_status(response: httpx.Response, provider: str) -> None:
    if response.status_code >= 400:
        excerpt = response.text[:200]
        raise ExtractionError(f"{provider} API error: {response.status_code} - {excerpt}")


async def _post(client: httpx.AsyncClient, provider: str, url: str, **kwargs: Any) -> Any:
    try:
        response = await client.post(url, **kwargs)
    except httpx.HTTPError as exc:
        raise ExtractionError(f"{provider} request failed: {exc}") from exc
    _raise_for_status(response, provider)
    try:
        return response.json()
    except ValueError as exc:
        raise ExtractionError(f"{provider} returned a non-JSON response") from exc


async def call_openai_api(
    client: httpx.AsyncClient, settings: Settings, prompt: str, text: str
) -> str:
    payload = {
        "model": settings.llm_model,
        "messages": [
            {"role": "system", "content": prompt},
            {"role": "user", "content": text},
        ],
        "temperature": TEMPERATURE,
    }
    url = settings.endpoint().rstrip("/")
    if not url.endswith("/chat/completions"):
        url += "/chat/completions"
    data = await _post(
        client,
        "OpenAI",
        url,
        json=payload,
        headers={"Authorization": f"Bearer {settings.llm_api_key}"},
    )
    try:
        return data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ExtractionError("OpenAI response has no message content") from exc


async def call_google_api(
    client: httpx.AsyncClient, settings: Settings, prompt: str, text: str
) -> str:
    payload = {
        "contents": [{"parts": [{"text": f"{prompt}\n\n{text}"}]}],
        "generationConfig": {"temperature": TEMPERATURE},
    }
    model = settings.llm_model
    if not model.startswith("models/"):
        model = f"models/{model}"
    data = await _post(
        client,
        "Google",
        f"{settings.endpoint().rstrip('/')}/{model}:generateContent",
        params={"key": settings.llm_api_key},
        json=payload,
    )
    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ExtractionError("Google response has no candidate text") from exc


def parse_llm_response(text: str) -> List[RawExtraction]:
    """Decode the first JSON array in ``text`` into validated raw records.

    Records that fail validation are skipped; anything other than a JSON
    array is an error.
    """
    match = _ARRAY_PATTERN.search(text or "")
    candidate = match.group(0) if match else (text or "")
    try:
        decoded = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ExtractionError("LLM returned invalid JSON") from exc
    if not isinstance(decoded, list):
        raise ExtractionError("LLM returned invalid JSON")

    records: List[RawExtraction] = []
    for position, item in enumerate(decoded):
        if not isinstance(item, dict):
            logger.warning("Skipping non-object record %d in model output", position)
            continue
        try:
            records.append(RawExtraction.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed record %d: %s", position, exc.errors()[:1])
    return records


async def extract_citations_from_window(
    settings: Settings, window: Window, client: Optional[httpx.AsyncClient] = None
) -> List[RawExtraction]:
    prompt = render_prompt(settings.extraction_prompt, window, settings.window_size, settings.overlap)
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.request_timeout)
    try:
        if settings.llm_provider == "openai":
            content = await call_openai_api(http, settings, prompt, window.text)
        else:
            content = await call_google_api(http, settings, prompt, window.text)
    finally:
        if owns_client:
            await http.aclose()
    return parse_llm_response(content)


__all__ = [
    "DEFAULT_ENDPOINTS",
    "ExtractionError",
    "call_google_api",
    "call_openai_api",
    "default_endpoint",
    "extract_citations_from_window",
    "parse_llm_response",
]
