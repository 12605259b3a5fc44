"""Persistent TTL cache for resolved structures and metadata lookups."""

from bioverse.cache.integrity import IntegrityVerifier
from bioverse.cache.store import (
    BaseCacheStore,
    CacheEntry,
    CacheNamespace,
    InMemoryCacheStore,
    NamespacedCache,
    SQLiteCacheStore,
)

__all__ = [
    "BaseCacheStore",
    "CacheEntry",
    "CacheNamespace",
    "InMemoryCacheStore",
    "IntegrityVerifier",
    "NamespacedCache",
    "SQLiteCacheStore",
]
