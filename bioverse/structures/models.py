"""Pydantic v2 models for structure resolution."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bioverse.cache.integrity import IntegrityVerifier
from bioverse.structures.validator import is_structure_payload


class IdKind(str, Enum):
    """Which kind of sub-identifier a provider consumes.

    uniprot: UniProtKB accession (AlphaFold DB is keyed by these).
    alphafold_model: a pinned AlphaFold fragment, ``AF-<acc>-F<n>``.
    alphafold_file: a pinned fragment and model version, ``AF-<acc>-F<n>-model_v<m>``.
    pdb: four-character PDB entry id.
    raw: the caller's identifier verbatim (last-resort providers only).
    """
    uniprot = "uniprot"
    alphafold_model = "alphafold_model"
    alphafold_file = "alphafold_file"
    pdb = "pdb"
    raw = "raw"


# ---------------------------------------------------------------------------
# Identifier parsing
# ---------------------------------------------------------------------------

# UniProtKB accession format, https://www.uniprot.org/help/accession_numbers
_UNIPROT = r"(?:[OPQ][0-9][A-Z0-9]{3}[0-9]|[A-NR-Z][0-9](?:[A-Z][A-Z0-9]{2}[0-9]){1,2})"
_UNIPROT_RE = re.compile(rf"^{_UNIPROT}$")
_ALPHAFOLD_RE = re.compile(rf"^AF-({_UNIPROT})-F(\d+)(?:-MODEL_V(\d+))?$")
_PDB_RE = re.compile(r"^[1-9][A-Z0-9]{3}$")
_TOKEN_SPLIT = re.compile(r"[\s,;|/:()\[\]]+")


class StructureIdentifier(BaseModel):
    """Immutable parsed view of a caller-supplied identifier.

    The raw text may embed zero, one or two provider-specific ids, e.g.
    ``"P69905"``, ``"AF-P69905-F1"``, ``"1A3N"`` or ``"P69905 PDB:1A3N"``.
    The first match of each kind wins. An AlphaFold model id also sets
    ``alphafold_model`` to its canonical file stem, so the fragment and
    version it names are the only ones fetched for it.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    uniprot_accession: str | None = None
    alphafold_model: str | None = None
    pdb_id: str | None = None

    @classmethod
    def parse(cls, raw: str) -> "StructureIdentifier":
        text = (raw or "").strip()
        if not text:
            raise ValueError("Structure identifier must be a non-empty string")

        accession: str | None = None
        model: str | None = None
        pdb_id: str | None = None
        for token in _TOKEN_SPLIT.split(text.upper()):
            if not token:
                continue
            if accession is None:
                af = _ALPHAFOLD_RE.match(token)
                if af:
                    accession, fragment, version = af.groups()
                    model = f"AF-{accession}-F{fragment}"
                    if version:
                        model += f"-model_v{version}"
                    continue
                if _UNIPROT_RE.match(token):
                    accession = token
                    continue
            if pdb_id is None and _PDB_RE.match(token):
                pdb_id = token

        return cls(raw=text, uniprot_accession=accession, alphafold_model=model, pdb_id=pdb_id)

    @property
    def sub_identifiers(self) -> dict[IdKind, str]:
        """Provider-specific ids found in the raw text, by kind."""
        found: dict[IdKind, str] = {}
        if self.alphafold_model:
            kind = IdKind.alphafold_file if "-model_v" in self.alphafold_model else IdKind.alphafold_model
            found[kind] = self.alphafold_model
        elif self.uniprot_accession:
            found[IdKind.uniprot] = self.uniprot_accession
        if self.pdb_id:
            found[IdKind.pdb] = self.pdb_id
        return found

    @property
    def cache_key(self) -> str:
        """Key for the structure cache namespace.

        Built from the normalised sub-identifiers, e.g. ``uniprot:P69905|pdb:1A3N``.
        Free-form identifiers are fetched verbatim, so their case is kept.
        """
        subs = self.sub_identifiers
        if subs:
            return "|".join(f"{kind.value}:{value}" for kind, value in subs.items())
        return f"raw:{self.raw}"

    def __str__(self) -> str:
        return self.raw


# ---------------------------------------------------------------------------
# Candidates and failure trail
# ---------------------------------------------------------------------------

class ProviderCandidate(BaseModel):
    """One URL to try for one provider. Ephemeral, never persisted."""

    model_config = ConfigDict(frozen=True)

    provider: str
    url: str
    priority: int


FailureKind = Literal["http_status", "invalid_payload", "transport_error"]


class CandidateAttempt(BaseModel):
    """Why a single candidate URL did not yield a structure."""

    url: str
    kind: FailureKind
    status_code: int | None = None
    detail: str = ""
    attempts: int = 1


class ProviderFailure(BaseModel):
    """All failed candidates for one provider, in the order they were tried."""

    provider: str
    sub_identifier: str
    candidates: list[CandidateAttempt] = Field(default_factory=list)

    @property
    def summary(self) -> str:
        parts = []
        for c in self.candidates:
            code = f" {c.status_code}" if c.status_code is not None else ""
            parts.append(f"{c.kind}{code}")
        return f"{self.provider}: " + ", ".join(parts)


# ---------------------------------------------------------------------------
# Records and outcomes
# ---------------------------------------------------------------------------

class StructureRecord(BaseModel):
    """A validated structure payload and where it came from.

    Construction fails unless ``raw_payload`` passes the PDB validator and
    ``expires_at`` is later than ``fetched_at``. Records are never updated in
    place; a re-resolution produces a new record.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    raw_payload: str
    source_provider: str
    source_url: str = ""
    fetched_at: datetime
    expires_at: datetime
    checksum: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("raw_payload")
    @classmethod
    def payload_must_be_structure(cls, v: str) -> str:
        if not is_structure_payload(v):
            raise ValueError("raw_payload contains no atomic-coordinate records")
        return v

    @model_validator(mode="before")
    @classmethod
    def fill_checksum(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("checksum") and isinstance(data.get("raw_payload"), str):
            data = {**data, "checksum": IntegrityVerifier.compute_checksum_text(data["raw_payload"])}
        return data

    @model_validator(mode="after")
    def check_lifetime_and_checksum(self) -> "StructureRecord":
        if self.expires_at <= self.fetched_at:
            raise ValueError("expires_at must be later than fetched_at")
        if not IntegrityVerifier.verify_text(self.raw_payload, self.checksum):
            raise ValueError("checksum does not match raw_payload")
        return self


class ResolutionSuccess(BaseModel):
    """A provider returned a validated payload.

    ``trail`` lists the providers that failed before the winning one.
    """

    ok: Literal[True] = True
    record: StructureRecord
    trail: list[ProviderFailure] = Field(default_factory=list)
    from_cache: bool = False


class ResolutionFailure(BaseModel):
    """Every provider and variant was exhausted."""

    ok: Literal[False] = False
    identifier: str
    trail: list[ProviderFailure] = Field(default_factory=list)


ResolutionOutcome = Union[ResolutionSuccess, ResolutionFailure]
