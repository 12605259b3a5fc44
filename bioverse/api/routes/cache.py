"""Cache maintenance endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from bioverse.api.dependencies import AppServices, get_services
from bioverse.api.models import SweepResponse
from bioverse.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.post("/sweep", response_model=SweepResponse)
async def sweep_cache(services: AppServices = Depends(get_services)):
    """Delete every expired entry in both namespaces."""
    try:
        removed = await services.structures.sweep()
        remaining = await services.store.count()
    except CacheUnavailableError as exc:
        logger.warning("Cache sweep failed: %s", exc)
        raise HTTPException(status_code=503, detail="Cache unavailable") from exc
    return SweepResponse(removed=removed, remaining=remaining)
