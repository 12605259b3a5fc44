"""GEO and ArrayExpress expression-study endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from bioverse.api.dependencies import get_arrayexpress_client, get_geo_client
from bioverse.api.models import (
    ExperimentDataResponse,
    ExperimentDetail,
    ExperimentSearchResponse,
    GeoDataset,
)
from bioverse.exceptions import MetadataNotFoundError, ProviderError
from bioverse.metadata.arrayexpress import ArrayExpressClient
from bioverse.metadata.geo import GeoClient

logger = logging.getLogger(__name__)

geo_router = APIRouter(prefix="/api/geo", tags=["geo"])
arrayexpress_router = APIRouter(prefix="/api/arrayexpress", tags=["arrayexpress"])


@geo_router.get("/expression", response_model=GeoDataset)
async def geo_expression(
    accession: str = Query(..., min_length=1, max_length=64),
    geo: GeoClient = Depends(get_geo_client),
):
    """GEO dataset title, summary and sample list for ``accession``."""
    try:
        return await geo.get_dataset(accession)
    except MetadataNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProviderError as exc:
        logger.warning("GEO lookup failed for %s: %s", accession, exc)
        raise HTTPException(status_code=502, detail="GEO lookup failed") from exc


@arrayexpress_router.get("/search", response_model=ExperimentSearchResponse)
async def search_experiments(
    query: str = Query(..., min_length=1, max_length=200),
    arrayexpress: ArrayExpressClient = Depends(get_arrayexpress_client),
):
    try:
        hits = await arrayexpress.search(query)
    except ProviderError as exc:
        logger.warning("ArrayExpress search failed for %r: %s", query, exc)
        raise HTTPException(status_code=502, detail="ArrayExpress search failed") from exc
    return {"experiments": {"experiment": hits}}


@arrayexpress_router.get("/experiment/{accession}", response_model=ExperimentDetail)
async def get_experiment(
    accession: str,
    arrayexpress: ArrayExpressClient = Depends(get_arrayexpress_client),
):
    try:
        return await arrayexpress.get_experiment(accession)
    except MetadataNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProviderError as exc:
        logger.warning("ArrayExpress lookup failed for %s: %s", accession, exc)
        raise HTTPException(status_code=502, detail="ArrayExpress lookup failed") from exc


@arrayexpress_router.get("/data/{accession}", response_model=ExperimentDataResponse)
async def get_experiment_data(
    accession: str,
    arrayexpress: ArrayExpressClient = Depends(get_arrayexpress_client),
):
    """Per-sample table (condition, expression value, organism, platform)."""
    try:
        return await arrayexpress.get_experiment_data(accession)
    except MetadataNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProviderError as exc:
        logger.warning("ArrayExpress data fetch failed for %s: %s", accession, exc)
        raise HTTPException(status_code=502, detail="ArrayExpress data fetch failed") from exc
