"""Error taxonomy for structure resolution and caching."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bioverse.structures.models import ResolutionFailure


class BioverseError(Exception):
    """Root of every error raised by this package."""


# ---------------------------------------------------------------------------
# Provider errors
# ---------------------------------------------------------------------------

class ProviderError(BioverseError):
    """A single candidate fetch against one provider failed."""

    kind = "provider_error"

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class TransientProviderError(ProviderError):
    """Timeout, connection failure, 5xx or 429. Eligible for retry."""

    kind = "transport_error"


class DefinitiveProviderError(ProviderError):
    """4xx status or a 2xx body the validator rejected. Never retried."""

    kind = "http_status"


class InvalidPayloadError(DefinitiveProviderError):
    """The provider answered 2xx but the body is not a structure file."""

    kind = "invalid_payload"


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

class ResolutionError(BioverseError):
    """Every provider and URL variant was exhausted for an identifier."""

    def __init__(self, failure: ResolutionFailure) -> None:
        self.failure = failure
        tried = ", ".join(f.provider for f in failure.trail) or "none"
        super().__init__(
            f"No structure found for '{failure.identifier}' (providers tried: {tried})"
        )


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

class CacheError(BioverseError):
    """Base class for cache store failures."""


class CacheUnavailableError(CacheError):
    """The backing store could not be opened, read or written."""


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class MetadataNotFoundError(BioverseError):
    """A metadata API reported that the requested record does not exist."""
