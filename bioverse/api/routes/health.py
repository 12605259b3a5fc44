"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends

from bioverse.api.dependencies import AppServices, get_services
from bioverse.api.models import HealthResponse
from bioverse.cache.store import CacheNamespace
from bioverse.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(services: AppServices = Depends(get_services)):
    """Check cache reachability and list the configured providers."""
    status = "healthy"
    cache_ok = False
    entries: dict[str, int] = {}

    try:
        for ns in CacheNamespace:
            entries[ns.value] = await services.store.count(ns)
        cache_ok = True
    except CacheUnavailableError:
        logger.warning("Cache health check failed")
        status = "degraded"

    return HealthResponse(
        status=status,
        cache_available=cache_ok,
        cache_entries=entries,
        providers=services.structures.resolver.provider_names,
    )
