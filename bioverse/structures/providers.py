"""Structure archive providers and the adapter that fetches from them.

Providers are plain data (:class:`ProviderDescriptor`): adding an archive or
a URL variant means adding a row to :func:`default_providers`, not writing a
new client class. :class:`ProviderAdapter` turns a descriptor plus a
sub-identifier into candidate URLs and walks them in order.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal

import httpx

from bioverse.exceptions import (
    DefinitiveProviderError,
    InvalidPayloadError,
    ProviderError,
    TransientProviderError,
)
from bioverse.retry import Sleep, with_retry
from bioverse.settings import ResolverConfig
from bioverse.structures.models import (
    CandidateAttempt,
    IdKind,
    ProviderCandidate,
    ProviderFailure,
)
from bioverse.structures.validator import PdbValidator

logger = logging.getLogger(__name__)

_USER_AGENT = "BIOVERSE-StructureResolver/1.0"


@dataclass(frozen=True)
class ProviderDescriptor:
    """One structure archive.

    Each entry of ``path_templates`` is a URL variant, formatted with
    ``{id}`` after the ``case`` transform and appended to ``base_url``. With
    an empty ``base_url`` each template is a full URL. Variants are tried in the order listed.
    """

    name: str
    priority: int
    id_kind: IdKind
    base_url: str
    path_templates: tuple[str, ...]
    case: Literal["upper", "lower"] | None = None
    reports_confidence: bool = False

    def transform(self, sub_identifier: str) -> str:
        if self.case == "upper":
            return sub_identifier.upper()
        if self.case == "lower":
            return sub_identifier.lower()
        return sub_identifier

    def candidates(self, sub_identifier: str) -> list[ProviderCandidate]:
        ident = self.transform(sub_identifier)
        base = self.base_url.rstrip("/")
        return [
            ProviderCandidate(
                provider=self.name,
                url=f"{base}/{template.format(id=ident)}" if base else template.format(id=ident),
                priority=self.priority,
            )
            for template in self.path_templates
        ]


def default_providers(config: ResolverConfig) -> list[ProviderDescriptor]:
    """The standard provider table, ordered by priority.

    AlphaFold DB first (most specific: predicted model for an accession, or
    exactly the fragment and version an AlphaFold model id names),
    then RCSB and PDBe for experimental entries, then a last-resort provider
    that tries the raw identifier verbatim.
    """
    providers = [
        ProviderDescriptor(
            name="alphafold",
            priority=10,
            id_kind=IdKind.uniprot,
            base_url=config.alphafold_base_url,
            path_templates=(
                "AF-{id}-F1-model_v4.pdb",
                "AF-{id}-F1.pdb",
                "AF-{id}.pdb",
            ),
            case="upper",
            reports_confidence=True,
        ),
        ProviderDescriptor(
            name="alphafold",
            priority=10,
            id_kind=IdKind.alphafold_model,
            base_url=config.alphafold_base_url,
            path_templates=("{id}-model_v4.pdb", "{id}.pdb"),
            reports_confidence=True,
        ),
        ProviderDescriptor(
            name="alphafold",
            priority=10,
            id_kind=IdKind.alphafold_file,
            base_url=config.alphafold_base_url,
            path_templates=("{id}.pdb",),
            reports_confidence=True,
        ),
        ProviderDescriptor(
            name="rcsb",
            priority=20,
            id_kind=IdKind.pdb,
            base_url=config.rcsb_base_url,
            path_templates=("download/{id}.pdb",),
            case="upper",
        ),
        ProviderDescriptor(
            name="pdbe",
            priority=30,
            id_kind=IdKind.pdb,
            base_url=config.pdbe_base_url,
            path_templates=("pdbe/entry-files/download/{id}.pdb",),
            case="lower",
        ),
        ProviderDescriptor(
            name="generic",
            priority=100,
            id_kind=IdKind.raw,
            base_url="",
            path_templates=(
                config.alphafold_base_url.rstrip("/") + "/{id}.pdb",
                config.rcsb_base_url.rstrip("/") + "/download/{id}.pdb",
            ),
        ),
    ]
    return sorted(providers, key=lambda p: p.priority)


@dataclass(frozen=True)
class FetchResult:
    """A validated payload and the candidate that produced it."""

    candidate: ProviderCandidate
    payload: str


class ProviderExhaustedError(ProviderError):
    """Every candidate URL of one provider failed; carries the details."""

    def __init__(self, failure: ProviderFailure) -> None:
        super().__init__(failure.summary)
        self.failure = failure


class ProviderAdapter:
    """Fetch a structure for one sub-identifier from one provider.

    Each candidate URL goes through :func:`bioverse.retry.with_retry`, so
    transient failures are retried against the same URL. A 4xx status or a
    body the validator rejects is final for that URL and the adapter moves on
    to the next variant. A candidate that exhausts its retry budget ends the
    provider: the host is considered unavailable and the remaining variants
    are skipped.
    """

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        client: httpx.AsyncClient,
        config: ResolverConfig,
        validator: PdbValidator,
        *,
        sleep: Sleep | None = None,
    ) -> None:
        self.descriptor = descriptor
        self._client = client
        self._config = config
        self._validator = validator
        self._sleep = sleep or asyncio.sleep

    @property
    def name(self) -> str:
        return self.descriptor.name

    async def fetch(self, sub_identifier: str) -> FetchResult:
        """Return the first validated payload, or raise ProviderExhaustedError."""
        failure = ProviderFailure(provider=self.name, sub_identifier=sub_identifier)

        for candidate in self.descriptor.candidates(sub_identifier):
            attempts = 0

            async def _attempt(url: str = candidate.url) -> str:
                nonlocal attempts
                attempts += 1
                return await self._get(url)

            try:
                payload = await with_retry(
                    _attempt,
                    self._config.max_attempts,
                    self._config.base_delay,
                    sleep=self._sleep,
                    description=f"[{self.name}] GET {candidate.url}",
                )
            except DefinitiveProviderError as exc:
                logger.info("[%s] rejected %s: %s", self.name, candidate.url, exc)
                failure.candidates.append(_attempt_record(candidate, exc, attempts))
                continue
            except TransientProviderError as exc:
                logger.warning(
                    "[%s] giving up on provider after %d attempts at %s: %s",
                    self.name, attempts, candidate.url, exc,
                )
                failure.candidates.append(_attempt_record(candidate, exc, attempts))
                break

            logger.info("[%s] validated structure from %s (%d bytes)", self.name, candidate.url, len(payload))
            return FetchResult(candidate=candidate, payload=payload)

        raise ProviderExhaustedError(failure)

    async def _get(self, url: str) -> str:
        """Issue one GET and classify the outcome."""
        try:
            resp = await self._client.get(
                url,
                timeout=self._config.timeout,
                headers={"User-Agent": _USER_AGENT},
                follow_redirects=True,
            )
        except httpx.TimeoutException as exc:
            raise TransientProviderError(f"timed out: {exc}", url=url) from exc
        except httpx.InvalidURL as exc:
            raise DefinitiveProviderError(f"invalid URL: {exc}", url=url) from exc
        except httpx.RequestError as exc:
            raise TransientProviderError(f"request failed: {exc}", url=url) from exc

        status = resp.status_code
        if status >= 500 or status == 429:
            raise TransientProviderError(f"HTTP {status}", url=url, status_code=status)
        if status >= 400:
            raise DefinitiveProviderError(f"HTTP {status}", url=url, status_code=status)
        if status >= 300:
            raise DefinitiveProviderError(f"unfollowed redirect HTTP {status}", url=url, status_code=status)

        body = resp.text
        if not self._validator.validate(body):
            preview = body[:80].replace("\n", " ")
            raise InvalidPayloadError(
                f"body is not a {self._validator.format_name} file: {preview!r}",
                url=url,
                status_code=status,
            )
        return body


def _attempt_record(candidate: ProviderCandidate, exc: ProviderError, attempts: int) -> CandidateAttempt:
    return CandidateAttempt(
        url=candidate.url,
        kind=exc.kind,
        status_code=exc.status_code,
        detail=str(exc),
        attempts=attempts,
    )
