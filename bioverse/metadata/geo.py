"""NCBI GEO dataset lookups via E-utilities (esearch + esummary on ``db=gds``)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bioverse.cache.store import BaseCacheStore
from bioverse.exceptions import MetadataNotFoundError
from bioverse.metadata.base import BaseMetadataClient
from bioverse.retry import Sleep
from bioverse.settings import ResolverConfig

logger = logging.getLogger(__name__)


class GeoClient(BaseMetadataClient):
    """Client for GEO DataSets through the NCBI E-utilities.

    Docs: https://www.ncbi.nlm.nih.gov/books/NBK25499/
    """

    source = "geo"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ResolverConfig,
        store: BaseCacheStore | None = None,
        *,
        sleep: Sleep | None = None,
    ) -> None:
        super().__init__(client, config, store, base_url=config.ncbi_eutils_base_url, sleep=sleep)
        self._api_key = config.ncbi_api_key

    def _params(self, **params: Any) -> dict[str, Any]:
        params["retmode"] = "json"
        if self._api_key:
            params["api_key"] = self._api_key
        return params

    async def get_dataset(self, accession: str) -> dict[str, Any]:
        """Look up a GEO accession (GSE/GDS) and summarize its samples.

        Raises MetadataNotFoundError when esearch returns no GDS uid, or the
        summary has no record for it.
        """
        accession = accession.strip().upper()
        key = f"geo:{accession}"
        cached = await self._cached(key)
        if cached is not None:
            return cached

        search = await self._get(
            "esearch.fcgi", params=self._params(db="gds", term=f"{accession}[Accession]")
        )
        idlist = (search.get("esearchresult", {}) or {}).get("idlist", []) if isinstance(search, dict) else []
        if not idlist:
            raise MetadataNotFoundError(f"No GEO dataset found for accession: {accession}")
        uid = str(idlist[0])

        summary = await self._get("esummary.fcgi", params=self._params(db="gds", id=uid))
        dataset = (summary.get("result", {}) or {}).get(uid) if isinstance(summary, dict) else None
        if not isinstance(dataset, dict):
            raise MetadataNotFoundError(f"GEO summary has no record {uid} for {accession}")

        result = summarize_dataset(accession, uid, dataset)
        logger.info("GEO %s: %d samples", accession, len(result["samples"]))
        await self._remember(key, result)
        return result


def summarize_dataset(accession: str, uid: str, dataset: dict[str, Any]) -> dict[str, Any]:
    """Reduce an esummary ``gds`` record to its descriptive fields and samples."""
    return {
        "dataset_id": accession,
        "uid": uid,
        "title": dataset.get("title") or accession,
        "summary": dataset.get("summary", ""),
        "organism": dataset.get("taxon") or "Unknown",
        "platform": ";".join(f"GPL{p}" for p in str(dataset.get("gpl") or "").split(";") if p) or "Unknown",
        "samples": [
            {"id": sample.get("accession", ""), "condition": sample.get("title", "")}
            for sample in dataset.get("samples", []) or []
        ],
    }
