"""Per-application service container and the FastAPI dependencies exposing it."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from bioverse.cache.store import BaseCacheStore, SQLiteCacheStore
from bioverse.metadata.arrayexpress import ArrayExpressClient
from bioverse.metadata.geo import GeoClient
from bioverse.metadata.uniprot import UniProtClient
from bioverse.retry import Sleep
from bioverse.settings import BioverseSettings
from bioverse.structures.resolver import FallbackResolver
from bioverse.structures.service import StructureService

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Everything the routes need, built once per application lifespan."""

    settings: BioverseSettings
    http_client: httpx.AsyncClient
    store: BaseCacheStore
    structures: StructureService
    uniprot: UniProtClient
    geo: GeoClient
    arrayexpress: ArrayExpressClient


def build_services(
    settings: BioverseSettings,
    http_client: httpx.AsyncClient,
    store: BaseCacheStore | None = None,
    *,
    sleep: Sleep | None = None,
) -> AppServices:
    """Wire the resolver, cache and metadata clients around one HTTP client."""
    config = settings.resolver_config()
    if store is None:
        store = SQLiteCacheStore(settings.cache_path)
        logger.info("Using SQLite cache at %s", settings.cache_path)
    resolver = FallbackResolver(config, http_client, sleep=sleep)
    return AppServices(
        settings=settings,
        http_client=http_client,
        store=store,
        structures=StructureService(resolver, store, config),
        uniprot=UniProtClient(http_client, config, store, sleep=sleep),
        geo=GeoClient(http_client, config, store, sleep=sleep),
        arrayexpress=ArrayExpressClient(http_client, config, store, sleep=sleep),
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_structure_service(request: Request) -> StructureService:
    return get_services(request).structures


def get_uniprot_client(request: Request) -> UniProtClient:
    return get_services(request).uniprot


def get_geo_client(request: Request) -> GeoClient:
    return get_services(request).geo


def get_arrayexpress_client(request: Request) -> ArrayExpressClient:
    return get_services(request).arrayexpress
