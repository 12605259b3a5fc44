"""ArrayExpress experiment lookups.

Search and experiment details come from the BioStudies API, which now hosts
ArrayExpress studies; per-sample tables come from the legacy ArrayExpress
JSON v3 endpoint.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator

import httpx

from bioverse.cache.store import BaseCacheStore
from bioverse.exceptions import (
    DefinitiveProviderError,
    InvalidPayloadError,
    MetadataNotFoundError,
)
from bioverse.metadata.base import BaseMetadataClient
from bioverse.retry import Sleep
from bioverse.settings import ResolverConfig

logger = logging.getLogger(__name__)

EXPERIMENT_ACCESSION = re.compile(r"^E-\w+-\d+$")

DATA_HEADERS = ["sample_id", "condition", "expression_value", "organism", "platform"]


class ArrayExpressClient(BaseMetadataClient):
    """Client for ArrayExpress studies on BioStudies.

    Docs: https://www.ebi.ac.uk/biostudies/help
    """

    source = "arrayexpress"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ResolverConfig,
        store: BaseCacheStore | None = None,
        *,
        sleep: Sleep | None = None,
    ) -> None:
        super().__init__(client, config, store, base_url=config.biostudies_base_url, sleep=sleep)
        self.data_base_url = config.arrayexpress_base_url.rstrip("/")

    async def _study(self, accession: str) -> dict[str, Any]:
        try:
            data = await self._get(f"studies/{accession}")
        except DefinitiveProviderError as exc:
            if exc.status_code in (400, 404):
                raise MetadataNotFoundError(f"ArrayExpress study not found: {accession}") from exc
            raise
        if not isinstance(data, dict) or not data.get("accno"):
            raise MetadataNotFoundError(f"ArrayExpress study not found: {accession}")
        return data

    async def search(self, query: str) -> list[dict[str, Any]]:
        """Search ArrayExpress studies by keyword, or look one up by accession.

        A query shaped like ``E-MTAB-1234`` is fetched directly and yields at
        most one result; anything else is a BioStudies free-text search
        restricted to ArrayExpress (``E-`` accessions only).
        """
        query = query.strip()
        key = f"arrayexpress-search:{query.lower()}"
        cached = await self._cached(key)
        if cached is not None:
            return cached

        if EXPERIMENT_ACCESSION.match(query):
            try:
                study = await self._study(query)
            except MetadataNotFoundError:
                results = []
            else:
                section = study.get("section", {}) or {}
                results = [{
                    "accession": study["accno"],
                    "name": study.get("title") or study["accno"],
                    "description": section.get("description", ""),
                    "organism": section.get("organism") or "Unknown",
                    "platform": section.get("platform") or "Unknown",
                    "samples": len(section.get("files", []) or []),
                }]
        else:
            data = await self._get("studies", params={"query": f'{query} type:"Array Express"'})
            hits = data.get("hits", []) if isinstance(data, dict) else []
            results = [
                {
                    "accession": hit["accno"],
                    "name": hit.get("title") or hit["accno"],
                    "description": hit.get("description", ""),
                    "organism": hit.get("organism") or "Unknown",
                    "platform": hit.get("type") or "Unknown",
                    "samples": hit.get("filesCount") or 0,
                }
                for hit in hits
                if str(hit.get("accno", "")).startswith("E-")
            ]

        logger.info("ArrayExpress search %r: %d experiments", query, len(results))
        await self._remember(key, results)
        return results

    async def get_experiment(self, accession: str) -> dict[str, Any]:
        """Fetch one study and flatten its descriptive attributes and raw-data files."""
        accession = accession.strip().upper()
        key = f"arrayexpress-experiment:{accession}"
        cached = await self._cached(key)
        if cached is not None:
            return cached

        study = await self._study(accession)
        section = study.get("section")
        if not isinstance(section, dict):
            raise InvalidPayloadError(
                f"study {accession} has no section",
                url=f"{self.base_url}/studies/{accession}",
            )

        result = {
            "accession": study["accno"],
            "name": _attribute(study.get("attributes"), "Title") or study["accno"],
            "description": _attribute(section.get("attributes"), "Description") or "",
            "organism": _attribute(section.get("attributes"), "Organism") or "Unknown",
            "platform": _attribute(section.get("attributes"), "Study type") or "Unknown",
            "samples": _raw_data_samples(section),
        }
        await self._remember(key, result)
        return result

    async def get_experiment_data(self, accession: str) -> dict[str, Any]:
        """Tabulate an experiment's samples as ``{"headers": [...], "data": [...]}``."""
        accession = accession.strip().upper()
        key = f"arrayexpress-data:{accession}"
        cached = await self._cached(key)
        if cached is not None:
            return cached

        try:
            data = await self._get(f"{self.data_base_url}/experiments/{accession}")
        except DefinitiveProviderError as exc:
            if exc.status_code in (400, 404):
                raise MetadataNotFoundError(f"ArrayExpress experiment not found: {accession}") from exc
            raise
        experiment = data.get("experiment") if isinstance(data, dict) else None
        if not isinstance(experiment, dict):
            raise MetadataNotFoundError(f"ArrayExpress experiment not found: {accession}")

        rows = []
        for sample in (experiment.get("samples", {}) or {}).get("sample", []) or []:
            characteristics = sample.get("characteristics", []) or []
            rows.append({
                "sample_id": sample.get("accession", ""),
                "condition": str(_characteristic(characteristics, "condition") or "Unknown"),
                "expression_value": str(_characteristic(characteristics, "expression") or "0"),
                "organism": experiment.get("organism"),
                "platform": experiment.get("platform"),
            })

        result = {"headers": list(DATA_HEADERS), "data": rows}
        await self._remember(key, result)
        return result


def _attribute(attributes: list[dict] | None, name: str) -> str | None:
    for attr in attributes or []:
        if isinstance(attr, dict) and attr.get("name") == name:
            return attr.get("value")
    return None


def _characteristic(characteristics: list[dict], category: str) -> str | None:
    for item in characteristics:
        if item.get("category") == category:
            return item.get("value")
    return None


def _subsections(section: dict[str, Any], kind: str) -> Iterator[dict[str, Any]]:
    # Subsection lists mix plain sections with nested section tables (lists).
    for sub in section.get("subsections", []) or []:
        if isinstance(sub, dict) and sub.get("type") == kind:
            yield sub


def _raw_data_samples(section: dict[str, Any]) -> list[dict[str, str]]:
    """Samples listed in the first file table under Assays and Data / Raw Data."""
    assays = next(_subsections(section, "Assays and Data"), None)
    raw = next(_subsections(assays, "Raw Data"), None) if assays else None
    files = (raw or {}).get("files") or []
    if not files:
        return []
    table = files[0] if isinstance(files[0], list) else files
    samples = []
    for item in table:
        path = item.get("path", "")
        samples.append({
            "id": path,
            "name": _attribute(item.get("attributes"), "Samples") or path,
            "condition": _attribute(item.get("attributes"), "Description") or "Unknown",
        })
    return samples
