"""Shared plumbing for bibliographic authority clients."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

USER_AGENT = "reference-harvester/0.1"
DEFAULT_TIMEOUT = 30.0


class AuthorityError(RuntimeError):
    """An authority lookup failed for a reason other than "not found"."""


class AuthorityClient:
    """Base class for async JSON lookups against a bibliographic authority."""

    name: str = "base"
    base_url: str = ""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = DEFAULT_TIMEOUT):
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout, headers={"User-Agent": USER_AGENT}
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _params(user_email: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = dict(extra or {})
        if user_email:
            params["mailto"] = user_email
        return params

    async def _get_json(
        self, url: str, params: Dict[str, Any], allow_missing: bool = True
    ) -> Optional[Dict[str, Any]]:
        """GET a JSON object from ``url``; ``None`` on 404 when ``allow_missing``."""
        try:
            response = await self.client.get(url, params=params or None)
        except httpx.HTTPError as exc:
            raise AuthorityError(f"{self.name} request failed: {exc}") from exc

        if response.status_code == 404 and allow_missing:
            return None
        if response.status_code >= 400:
            raise AuthorityError(f"{self.name} error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise AuthorityError(f"{self.name} returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise AuthorityError(f"{self.name} returned {type(data).__name__}, expected an object")
        return data
