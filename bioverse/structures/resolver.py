"""Ordered fallback across structure providers."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Protocol, Sequence

import httpx

from bioverse.retry import Sleep
from bioverse.settings import ResolverConfig
from bioverse.structures.models import (
    IdKind,
    ProviderFailure,
    ResolutionFailure,
    ResolutionOutcome,
    ResolutionSuccess,
    StructureIdentifier,
    StructureRecord,
)
from bioverse.structures.providers import (
    FetchResult,
    ProviderAdapter,
    ProviderDescriptor,
    ProviderExhaustedError,
    default_providers,
)
from bioverse.structures.validator import PdbValidator, extract_plddt
from bioverse.utils import Clock, epoch_now, from_epoch

logger = logging.getLogger(__name__)


class Adapter(Protocol):
    """What the resolver needs from an adapter (real or fake)."""

    descriptor: ProviderDescriptor

    async def fetch(self, sub_identifier: str) -> FetchResult: ...


class FallbackResolver:
    """Resolve an identifier by trying providers strictly in priority order.

    The first provider to return a validated payload wins and no later
    provider is contacted. Providers are never raced. Providers keyed on the
    raw identifier are last-resort: they run only when the identifier yields
    no provider-specific sub-identifier at all.
    """

    def __init__(
        self,
        config: ResolverConfig,
        client: httpx.AsyncClient | None = None,
        *,
        providers: Sequence[ProviderDescriptor] | None = None,
        adapters: Sequence[Adapter] | None = None,
        validator: PdbValidator | None = None,
        sleep: Sleep | None = None,
        clock: Clock = epoch_now,
    ) -> None:
        self._config = config
        self._clock = clock
        if adapters is None:
            if client is None:
                raise ValueError("FallbackResolver needs an httpx.AsyncClient or explicit adapters")
            validator = validator or PdbValidator()
            descriptors = providers if providers is not None else default_providers(config)
            adapters = [
                ProviderAdapter(d, client, config, validator, sleep=sleep)
                for d in descriptors
            ]
        self._adapters: list[Adapter] = sorted(adapters, key=lambda a: a.descriptor.priority)

    @property
    def provider_names(self) -> list[str]:
        return list(dict.fromkeys(a.descriptor.name for a in self._adapters))

    def plan(self, identifier: StructureIdentifier) -> list[tuple[Adapter, str]]:
        """The ordered (adapter, sub-identifier) pairs ``resolve`` will try."""
        subs = identifier.sub_identifiers
        steps: list[tuple[Adapter, str]] = []
        for adapter in self._adapters:
            kind = adapter.descriptor.id_kind
            if kind is IdKind.raw:
                if not subs:
                    steps.append((adapter, identifier.raw))
            elif kind in subs:
                steps.append((adapter, subs[kind]))
        return steps

    async def resolve(self, identifier: str | StructureIdentifier) -> ResolutionOutcome:
        ident = identifier if isinstance(identifier, StructureIdentifier) else StructureIdentifier.parse(identifier)
        steps = self.plan(ident)
        logger.info(
            "Resolving '%s' via %s",
            ident.raw, ", ".join(f"{a.descriptor.name}({sub})" for a, sub in steps) or "no providers",
        )

        trail: list[ProviderFailure] = []
        for adapter, sub in steps:
            try:
                result = await adapter.fetch(sub)
            except ProviderExhaustedError as exc:
                logger.info("Provider %s exhausted for '%s': %s", adapter.descriptor.name, ident.raw, exc)
                trail.append(exc.failure)
                continue

            record = self._build_record(ident, adapter.descriptor, result)
            logger.info("Resolved '%s' from %s (%s)", ident.raw, record.source_provider, record.source_url)
            return ResolutionSuccess(record=record, trail=trail)

        logger.warning(
            "Could not resolve '%s': %s",
            ident.raw, "; ".join(f.summary for f in trail) or "no provider accepts this identifier",
        )
        return ResolutionFailure(identifier=ident.raw, trail=trail)

    def _build_record(
        self,
        ident: StructureIdentifier,
        descriptor: ProviderDescriptor,
        result: FetchResult,
    ) -> StructureRecord:
        fetched_at = from_epoch(self._clock())
        metadata: dict = {"sub_identifier": _sub_for(ident, descriptor)}
        if descriptor.reports_confidence:
            plddt = extract_plddt(result.payload)
            if plddt:
                metadata["plddt"] = plddt
                metadata["mean_plddt"] = round(sum(plddt) / len(plddt), 2)
        return StructureRecord(
            id=ident.raw,
            raw_payload=result.payload,
            source_provider=descriptor.name,
            source_url=result.candidate.url,
            fetched_at=fetched_at,
            expires_at=fetched_at + timedelta(seconds=self._config.structure_ttl),
            metadata=metadata,
        )


def _sub_for(ident: StructureIdentifier, descriptor: ProviderDescriptor) -> str:
    if descriptor.id_kind is IdKind.raw:
        return ident.raw
    return ident.sub_identifiers.get(descriptor.id_kind, ident.raw)
