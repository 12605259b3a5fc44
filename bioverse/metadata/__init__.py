"""Metadata lookups (UniProtKB, GEO, ArrayExpress) cached separately from structure records."""

from bioverse.metadata.arrayexpress import ArrayExpressClient
from bioverse.metadata.geo import GeoClient
from bioverse.metadata.uniprot import UniProtClient, summarize_entry

__all__ = ["ArrayExpressClient", "GeoClient", "UniProtClient", "summarize_entry"]
