"""
BIOVERSE structure resolution
Protein structure lookup across AlphaFold DB, RCSB PDB and PDBe with a TTL cache
"""

__version__ = "0.1.0"
__author__ = "BIOVERSE Team"

from bioverse.settings import BioverseSettings, ResolverConfig, get_settings
from bioverse.cache import InMemoryCacheStore, SQLiteCacheStore
from bioverse.structures import FallbackResolver, StructureIdentifier, StructureRecord, StructureService
from bioverse.metadata import ArrayExpressClient, GeoClient, UniProtClient

__all__ = [
    "BioverseSettings",
    "ResolverConfig",
    "get_settings",
    "InMemoryCacheStore",
    "SQLiteCacheStore",
    "FallbackResolver",
    "StructureIdentifier",
    "StructureRecord",
    "StructureService",
    "UniProtClient",
    "GeoClient",
    "ArrayExpressClient",
]
