"""BIOVERSE FastAPI application."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from bioverse.api.dependencies import build_services
from bioverse.api.middleware import access_log_middleware
from bioverse.cache.store import BaseCacheStore
from bioverse.exceptions import CacheUnavailableError
from bioverse.settings import BioverseSettings, get_settings
from bioverse.structures.service import StructureService

logger = logging.getLogger(__name__)


async def periodic_sweep(service: StructureService, interval: float) -> None:
    """Run the cache maintenance pass every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await service.sweep()
        except CacheUnavailableError as exc:
            logger.warning("Scheduled cache sweep failed: %s", exc)
            continue
        if removed:
            logger.info("Scheduled cache sweep removed %d expired entries", removed)


def create_app(
    settings: BioverseSettings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    store: BaseCacheStore | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    ``http_client`` and ``store`` are normally created inside the lifespan;
    passing them in (tests, embedding) leaves their ownership with the caller.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle handler."""
        client = http_client or httpx.AsyncClient(follow_redirects=True, timeout=settings.http_timeout)
        services = build_services(settings, client, store)
        app.state.services = services

        sweeper = None
        if settings.sweep_interval > 0:
            sweeper = asyncio.create_task(periodic_sweep(services.structures, settings.sweep_interval))

        logger.info(
            "BIOVERSE API starting - providers=%s, cache=%s",
            ",".join(services.structures.resolver.provider_names),
            type(services.store).__name__,
        )
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper
            if http_client is None:
                await client.aclose()
            logger.info("BIOVERSE API shutdown - HTTP client closed")

    app = FastAPI(
        title="BIOVERSE API",
        description="Protein structure resolution across AlphaFold DB, RCSB PDB and PDBe",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS - restricted to configured origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
        expose_headers=["X-Structure-Source", "X-Structure-Url", "X-Cache", "X-Request-ID"],
    )

    # Access log and X-Request-ID
    app.add_middleware(BaseHTTPMiddleware, dispatch=access_log_middleware)

    from bioverse.api.routes.cache import router as cache_router
    from bioverse.api.routes.expression import arrayexpress_router, geo_router
    from bioverse.api.routes.health import router as health_router
    from bioverse.api.routes.structures import router as structures_router
    from bioverse.api.routes.uniprot import router as uniprot_router

    app.include_router(health_router)
    app.include_router(structures_router)
    app.include_router(uniprot_router)
    app.include_router(geo_router)
    app.include_router(arrayexpress_router)
    app.include_router(cache_router)

    return app


app = create_app()
