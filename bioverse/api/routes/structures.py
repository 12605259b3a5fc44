"""Structure resolution endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse

from bioverse.api.dependencies import get_structure_service
from bioverse.api.models import ForgetResponse, ResolutionFailureResponse, StructureRecordResponse
from bioverse.structures.models import ResolutionFailure, ResolutionOutcome
from bioverse.structures.service import StructureService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/structure", tags=["structures"])


async def _resolve(service: StructureService, identifier: str) -> ResolutionOutcome:
    try:
        return await service.resolve(identifier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _not_found(outcome: ResolutionFailure) -> JSONResponse:
    body = ResolutionFailureResponse(
        error=f"No structure found for '{outcome.identifier}'",
        identifier=outcome.identifier,
        trail=outcome.trail,
    )
    return JSONResponse(status_code=404, content=body.model_dump(mode="json"))


@router.get("/{identifier}", response_class=PlainTextResponse)
async def get_structure(identifier: str, service: StructureService = Depends(get_structure_service)):
    """Return the PDB text for ``identifier``, trying providers in priority order."""
    outcome = await _resolve(service, identifier)
    if isinstance(outcome, ResolutionFailure):
        return _not_found(outcome)

    record = outcome.record
    return PlainTextResponse(
        record.raw_payload,
        headers={
            "X-Structure-Source": record.source_provider,
            "X-Structure-Url": record.source_url,
            "X-Cache": "HIT" if outcome.from_cache else "MISS",
        },
    )


@router.get("/{identifier}/record", response_model=StructureRecordResponse)
async def get_structure_record(identifier: str, service: StructureService = Depends(get_structure_service)):
    """Return where the structure came from, without the coordinate payload."""
    outcome = await _resolve(service, identifier)
    if isinstance(outcome, ResolutionFailure):
        return _not_found(outcome)

    record = outcome.record
    return StructureRecordResponse(
        id=record.id,
        source_provider=record.source_provider,
        source_url=record.source_url,
        fetched_at=record.fetched_at,
        expires_at=record.expires_at,
        checksum=record.checksum,
        payload_bytes=len(record.raw_payload.encode("utf-8")),
        metadata=record.metadata,
        from_cache=outcome.from_cache,
        trail=outcome.trail,
    )


@router.delete("/{identifier}", response_model=ForgetResponse)
async def forget_structure(identifier: str, service: StructureService = Depends(get_structure_service)):
    """Drop the cached record so the next request re-resolves."""
    try:
        deleted = await service.forget(identifier)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return ForgetResponse(identifier=identifier, deleted=deleted)
