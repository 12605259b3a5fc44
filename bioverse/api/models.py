"""Pydantic response models for the BIOVERSE API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from bioverse.structures.models import ProviderFailure


# ---------------------------------------------------------------------------
# Structures
# ---------------------------------------------------------------------------

class StructureRecordResponse(BaseModel):
    """Record metadata without the (large) coordinate payload."""

    id: str
    source_provider: str
    source_url: str
    fetched_at: datetime
    expires_at: datetime
    checksum: str
    payload_bytes: int
    metadata: dict[str, Any] = Field(default_factory=dict)
    from_cache: bool = False
    trail: list[ProviderFailure] = Field(default_factory=list)


class ResolutionFailureResponse(BaseModel):
    error: str
    identifier: str
    trail: list[ProviderFailure] = Field(default_factory=list)


class ForgetResponse(BaseModel):
    identifier: str
    deleted: bool


# ---------------------------------------------------------------------------
# UniProt
# ---------------------------------------------------------------------------

class ProteinFeature(BaseModel):
    type: str = ""
    start: int | None = None
    end: int | None = None
    description: str = ""


class ProteinSummary(BaseModel):
    accession: str
    id: str = ""
    protein_name: str = "Unknown"
    organism: str = "Unknown"
    sequence: str = ""
    length: int = 0
    features: list[ProteinFeature] = Field(default_factory=list)


class PdbCrossReferenceResponse(BaseModel):
    query: str
    pdb_id: str | None = None


# ---------------------------------------------------------------------------
# GEO / ArrayExpress
# ---------------------------------------------------------------------------

class GeoSample(BaseModel):
    id: str
    condition: str = ""


class GeoDataset(BaseModel):
    dataset_id: str
    uid: str
    title: str
    summary: str = ""
    organism: str = "Unknown"
    platform: str = "Unknown"
    samples: list[GeoSample] = Field(default_factory=list)


class ExperimentHit(BaseModel):
    accession: str
    name: str
    description: str = ""
    organism: str = "Unknown"
    platform: str = "Unknown"
    samples: int = 0


class ExperimentList(BaseModel):
    experiment: list[ExperimentHit] = Field(default_factory=list)


class ExperimentSearchResponse(BaseModel):
    experiments: ExperimentList


class ExperimentSample(BaseModel):
    id: str
    name: str
    condition: str = "Unknown"


class ExperimentDetail(BaseModel):
    accession: str
    name: str
    description: str = ""
    organism: str = "Unknown"
    platform: str = "Unknown"
    samples: list[ExperimentSample] = Field(default_factory=list)


class ExperimentDataRow(BaseModel):
    sample_id: str
    condition: str = "Unknown"
    expression_value: str = "0"
    organism: Any = None
    platform: Any = None


class ExperimentDataResponse(BaseModel):
    headers: list[str]
    data: list[ExperimentDataRow] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Cache / health
# ---------------------------------------------------------------------------

class SweepResponse(BaseModel):
    removed: int
    remaining: int


class HealthResponse(BaseModel):
    status: str = "healthy"
    cache_available: bool = False
    cache_entries: dict[str, int] = Field(default_factory=dict)
    providers: list[str] = Field(default_factory=list)
