"""Shared plumbing for the JSON metadata APIs (UniProt, NCBI GEO, BioStudies).

Each client subclasses :class:`BaseMetadataClient`, which provides a retried
JSON GET and read-through caching in the ``metadata`` namespace. No real HTTP
calls are made in tests: pass an ``httpx.AsyncClient`` built on
``httpx.MockTransport``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from bioverse.cache.store import BaseCacheStore, CacheNamespace
from bioverse.exceptions import (
    CacheUnavailableError,
    DefinitiveProviderError,
    TransientProviderError,
)
from bioverse.retry import Sleep, with_retry
from bioverse.settings import ResolverConfig

logger = logging.getLogger(__name__)


class BaseMetadataClient:
    """Retried JSON GETs against one base URL, cached per lookup key."""

    source = "metadata"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ResolverConfig,
        store: BaseCacheStore | None = None,
        *,
        base_url: str = "",
        sleep: Sleep | None = None,
    ) -> None:
        self._client = client
        self._config = config
        self.base_url = base_url.rstrip("/")
        self._cache = store.namespace(CacheNamespace.metadata, config.metadata_ttl) if store else None
        self._retry_kwargs: dict[str, Any] = {"sleep": sleep} if sleep is not None else {}

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict | list:
        """Issue a GET request with retry logic and return decoded JSON."""
        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url

        async def _attempt() -> dict | list:
            try:
                resp = await self._client.get(
                    url,
                    params=params,
                    timeout=self._config.timeout,
                    headers={"Accept": "application/json"},
                )
            except httpx.InvalidURL as exc:
                raise DefinitiveProviderError(f"invalid URL: {exc}", url=url) from exc
            except httpx.RequestError as exc:
                raise TransientProviderError(f"request failed: {exc}", url=url) from exc

            if resp.status_code >= 500 or resp.status_code == 429:
                raise TransientProviderError(
                    f"HTTP {resp.status_code}", url=url, status_code=resp.status_code
                )
            if resp.status_code >= 400:
                raise DefinitiveProviderError(
                    f"HTTP {resp.status_code}", url=url, status_code=resp.status_code
                )
            # HTTP 204 No Content (and any response with empty body)
            # has no JSON to parse.
            if resp.status_code == 204 or not resp.content:
                return {}
            try:
                return resp.json()
            except (json.JSONDecodeError, ValueError):
                logger.warning("Non-JSON response from %s (status %d)", url, resp.status_code)
                return {}

        return await with_retry(
            _attempt,
            self._config.max_attempts,
            self._config.base_delay,
            description=f"[{self.source}] GET {url}",
            **self._retry_kwargs,
        )

    async def _cached(self, key: str) -> Any | None:
        if self._cache is None:
            return None
        try:
            value = await self._cache.get(key)
        except CacheUnavailableError:
            logger.warning("Metadata cache unavailable for %s", key, exc_info=True)
            return None
        if value is not None:
            logger.debug("Metadata cache hit for %s", key)
        return value

    async def _remember(self, key: str, value: Any) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.put(key, value)
        except CacheUnavailableError:
            logger.warning("Metadata cache unavailable; %s not cached", key, exc_info=True)
