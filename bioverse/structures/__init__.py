"""Structure resolution for BIOVERSE.

Locates a 3-D structure file for an ambiguous protein identifier across
several structure archives, validates what comes back, and caches results.

Core components:
    PdbValidator        - accepts payloads carrying atomic-coordinate records
    ProviderDescriptor  - one archive as data (priority, id kind, URL variants)
    ProviderAdapter     - walks one provider's URL variants with retry
    FallbackResolver    - tries providers in priority order, first success wins
    StructureService    - cache-fronted entry point
"""

from bioverse.structures.models import (
    CandidateAttempt,
    IdKind,
    ProviderCandidate,
    ProviderFailure,
    ResolutionFailure,
    ResolutionOutcome,
    ResolutionSuccess,
    StructureIdentifier,
    StructureRecord,
)
from bioverse.structures.providers import ProviderAdapter, ProviderDescriptor, default_providers
from bioverse.structures.resolver import FallbackResolver
from bioverse.structures.service import StructureService
from bioverse.structures.validator import PdbValidator

__all__ = [
    "CandidateAttempt",
    "FallbackResolver",
    "IdKind",
    "PdbValidator",
    "ProviderAdapter",
    "ProviderCandidate",
    "ProviderDescriptor",
    "ProviderFailure",
    "ResolutionFailure",
    "ResolutionOutcome",
    "ResolutionSuccess",
    "StructureIdentifier",
    "StructureRecord",
    "StructureService",
    "default_providers",
]
