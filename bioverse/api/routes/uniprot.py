"""UniProt metadata endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from bioverse.api.dependencies import get_uniprot_client
from bioverse.api.models import PdbCrossReferenceResponse, ProteinSummary
from bioverse.exceptions import MetadataNotFoundError, ProviderError
from bioverse.metadata.uniprot import UniProtClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/uniprot", tags=["uniprot"])


@router.get("/search/pdb", response_model=PdbCrossReferenceResponse)
async def search_pdb(
    query: str = Query(..., min_length=1, max_length=200),
    uniprot: UniProtClient = Depends(get_uniprot_client),
):
    """First PDB id cross-referenced by the best UniProt hit for ``query``."""
    try:
        pdb_id = await uniprot.find_pdb_cross_reference(query)
    except ProviderError as exc:
        logger.warning("UniProt search failed for %r: %s", query, exc)
        raise HTTPException(status_code=502, detail="UniProt search failed") from exc
    return PdbCrossReferenceResponse(query=query, pdb_id=pdb_id)


@router.get("/{accession}", response_model=ProteinSummary)
async def get_protein(accession: str, uniprot: UniProtClient = Depends(get_uniprot_client)):
    try:
        return await uniprot.get_protein(accession)
    except MetadataNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProviderError as exc:
        logger.warning("UniProt lookup failed for %s: %s", accession, exc)
        raise HTTPException(status_code=502, detail="UniProt lookup failed") from exc
