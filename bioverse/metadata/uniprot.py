"""Async client for UniProtKB metadata lookups.

Each request goes through the same retry wrapper as structure fetches, and
every successful lookup is cached in the ``metadata`` namespace with its own
(short) TTL, separate from structure records.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from bioverse.cache.store import BaseCacheStore
from bioverse.exceptions import DefinitiveProviderError, MetadataNotFoundError
from bioverse.metadata.base import BaseMetadataClient
from bioverse.retry import Sleep
from bioverse.settings import ResolverConfig

logger = logging.getLogger(__name__)


class UniProtClient(BaseMetadataClient):
    """Client for the UniProtKB REST API.

    Docs: https://rest.uniprot.org/docs/
    """

    source = "uniprot"

    def __init__(
        self,
        client: httpx.AsyncClient,
        config: ResolverConfig,
        store: BaseCacheStore | None = None,
        *,
        sleep: Sleep | None = None,
    ) -> None:
        super().__init__(client, config, store, base_url=config.uniprot_base_url, sleep=sleep)

    async def get_protein(self, accession: str) -> dict[str, Any]:
        """Fetch a UniProtKB entry and reduce it to a summary dict.

        Raises MetadataNotFoundError when UniProt has no such accession.
        """
        accession = accession.strip().upper()
        key = f"protein:{accession}"
        cached = await self._cached(key)
        if cached is not None:
            return cached

        try:
            data = await self._get(accession)
        except DefinitiveProviderError as exc:
            if exc.status_code in (400, 404):
                raise MetadataNotFoundError(f"UniProt accession not found: {accession}") from exc
            raise
        if not isinstance(data, dict) or not data.get("primaryAccession"):
            raise MetadataNotFoundError(f"UniProt accession not found: {accession}")

        summary = summarize_entry(data)
        await self._remember(key, summary)
        return summary

    async def find_pdb_cross_reference(self, query: str) -> str | None:
        """Return the first PDB id cross-referenced by the top search hit.

        A free-text protein name ("hemoglobin") is searched in UniProtKB and
        the best hit's ``uniProtKBCrossReferences`` are scanned for PDB.
        Negative answers are cached too, so repeated misses stay cheap.
        """
        query = query.strip()
        key = f"pdb-xref:{query.lower()}"
        cached = await self._cached(key)
        if cached is not None:
            return cached.get("pdb_id")

        result = await self._get("search", params={"query": query, "format": "json", "size": 1})
        entries = result.get("results", []) if isinstance(result, dict) else []
        pdb_id: str | None = None
        if entries:
            for ref in entries[0].get("uniProtKBCrossReferences", []) or []:
                if ref.get("database") == "PDB" and ref.get("id"):
                    pdb_id = str(ref["id"]).upper()
                    break

        logger.info("UniProt search %r: %s", query, pdb_id or "no PDB cross-reference")
        await self._remember(key, {"pdb_id": pdb_id})
        return pdb_id


def summarize_entry(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten a UniProtKB JSON entry into the fields the UI consumes."""
    description = data.get("proteinDescription", {}) or {}
    name = (
        description.get("recommendedName", {}).get("fullName", {}).get("value")
        or next(
            (
                s.get("fullName", {}).get("value")
                for s in description.get("submissionNames", []) or []
                if s.get("fullName", {}).get("value")
            ),
            None,
        )
        or "Unknown"
    )
    sequence = data.get("sequence", {}) or {}
    features = []
    for feature in data.get("features", []) or []:
        location = feature.get("location", {}) or {}
        features.append({
            "type": feature.get("type", ""),
            "start": (location.get("start") or {}).get("value"),
            "end": (location.get("end") or {}).get("value"),
            "description": feature.get("description", ""),
        })
    return {
        "accession": data.get("primaryAccession", ""),
        "id": data.get("uniProtkbId", ""),
        "protein_name": name,
        "organism": (data.get("organism", {}) or {}).get("scientificName", "Unknown"),
        "sequence": sequence.get("value", ""),
        "length": sequence.get("length", 0),
        "features": features,
    }
