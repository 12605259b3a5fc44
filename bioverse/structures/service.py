"""Cache-fronted structure resolution.

``StructureService`` is the inbound entry point: look in the structure cache,
fall back to the provider chain on a miss, and write successes back. Full
failures are never cached so the next request retries every provider.

The cache is an optimisation, not a source of truth. Unreadable entries and
an unavailable store both degrade to a miss; neither fails the resolution.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from bioverse.cache.store import BaseCacheStore, CacheNamespace
from bioverse.exceptions import CacheUnavailableError, ResolutionError
from bioverse.settings import ResolverConfig
from bioverse.structures.models import (
    ResolutionOutcome,
    ResolutionSuccess,
    StructureIdentifier,
    StructureRecord,
)
from bioverse.structures.resolver import FallbackResolver

logger = logging.getLogger(__name__)


class StructureService:
    """Resolve identifiers to validated structure records, with caching."""

    def __init__(
        self,
        resolver: FallbackResolver,
        store: BaseCacheStore,
        config: ResolverConfig,
    ) -> None:
        self.resolver = resolver
        self.store = store
        self.cache = store.namespace(CacheNamespace.structures, config.structure_ttl)
        self._config = config

    async def resolve(self, identifier: str) -> ResolutionOutcome:
        """Return a cached record when available, otherwise run the resolver."""
        ident = StructureIdentifier.parse(identifier)

        cached = await self._read_cached(ident)
        if cached is not None:
            logger.info("Cache hit for '%s' (%s)", ident.raw, cached.source_provider)
            return ResolutionSuccess(record=cached, from_cache=True)

        logger.info("Cache miss for '%s'", ident.raw)
        outcome = await self.resolver.resolve(ident)
        if isinstance(outcome, ResolutionSuccess):
            await self._write_cached(ident, outcome.record)
        return outcome

    async def resolve_structure(self, identifier: str) -> StructureRecord:
        """Resolve and return the record, raising ResolutionError on exhaustion."""
        outcome = await self.resolve(identifier)
        if isinstance(outcome, ResolutionSuccess):
            return outcome.record
        raise ResolutionError(outcome)

    async def forget(self, identifier: str) -> bool:
        """Drop the cached record for ``identifier``."""
        ident = StructureIdentifier.parse(identifier)
        try:
            return await self.cache.delete(ident.cache_key)
        except CacheUnavailableError:
            logger.warning("Cache unavailable; could not delete '%s'", ident.raw, exc_info=True)
            return False

    async def sweep(self) -> int:
        """Remove expired entries from every namespace of the backing store."""
        return await self.store.sweep_expired()

    # -- Cache helpers --------------------------------------------------------

    async def _read_cached(self, ident: StructureIdentifier) -> StructureRecord | None:
        try:
            data = await self.cache.get(ident.cache_key)
        except CacheUnavailableError:
            logger.warning("Cache unavailable; resolving '%s' without it", ident.raw, exc_info=True)
            return None
        if data is None:
            return None

        try:
            return StructureRecord.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Cached record for '%s' failed validation (%d errors) - evicting",
                ident.raw, exc.error_count(),
            )
            try:
                await self.cache.delete(ident.cache_key)
            except CacheUnavailableError:
                logger.warning("Cache unavailable; could not evict '%s'", ident.raw, exc_info=True)
            return None

    async def _write_cached(self, ident: StructureIdentifier, record: StructureRecord) -> None:
        ttl = (record.expires_at - record.fetched_at).total_seconds()
        try:
            await self.cache.put(ident.cache_key, record.model_dump(mode="json"), ttl)
        except CacheUnavailableError:
            logger.warning("Cache unavailable; '%s' resolved but not cached", ident.raw, exc_info=True)
