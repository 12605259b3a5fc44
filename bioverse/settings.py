"""BIOVERSE configuration settings using Pydantic.

Loads settings from, in order of precedence:
1. Keyword arguments / YAML overlay (``BioverseSettings.from_yaml``)
2. Environment variables with the ``BIOVERSE_`` prefix (and ``.env``)
3. Default values
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DAY = 24 * 60 * 60
_HOUR = 60 * 60


@dataclass(frozen=True)
class ResolverConfig:
    """Immutable snapshot of everything the resolution core needs.

    Passed explicitly into adapters, the resolver and the structure service
    so no component reads global configuration at call time.
    """

    alphafold_base_url: str = "https://alphafold.ebi.ac.uk/files"
    rcsb_base_url: str = "https://files.rcsb.org"
    pdbe_base_url: str = "https://www.ebi.ac.uk"
    uniprot_base_url: str = "https://rest.uniprot.org/uniprotkb"
    ncbi_eutils_base_url: str = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
    ncbi_api_key: Optional[str] = None
    biostudies_base_url: str = "https://www.ebi.ac.uk/biostudies/api/v1"
    arrayexpress_base_url: str = "https://www.ebi.ac.uk/arrayexpress/json/v3"
    max_attempts: int = 3
    base_delay: float = 1.0
    timeout: float = 30.0
    structure_ttl: float = 7 * _DAY
    metadata_ttl: float = 1 * _HOUR


class BioverseSettings(BaseSettings):
    """Central configuration for the BIOVERSE structure service."""

    model_config = SettingsConfigDict(
        env_prefix="BIOVERSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Provider endpoints ---
    alphafold_base_url: str = Field(default="https://alphafold.ebi.ac.uk/files")
    rcsb_base_url: str = Field(default="https://files.rcsb.org")
    pdbe_base_url: str = Field(default="https://www.ebi.ac.uk")
    uniprot_base_url: str = Field(default="https://rest.uniprot.org/uniprotkb")
    ncbi_eutils_base_url: str = Field(default="https://eutils.ncbi.nlm.nih.gov/entrez/eutils")
    ncbi_api_key: Optional[str] = Field(default=None, description="Raises the E-utilities rate limit")
    biostudies_base_url: str = Field(default="https://www.ebi.ac.uk/biostudies/api/v1")
    arrayexpress_base_url: str = Field(default="https://www.ebi.ac.uk/arrayexpress/json/v3")

    # --- Retry / transport ---
    retry_max_attempts: int = Field(default=3, ge=1, description="Tries per candidate URL")
    retry_base_delay: float = Field(default=1.0, ge=0, description="Backoff base delay (seconds)")
    http_timeout: float = Field(default=30.0, gt=0, description="Per-attempt timeout (seconds)")

    # --- Cache ---
    cache_path: Path = Field(
        default_factory=lambda: Path.home() / ".cache" / "bioverse" / "cache.sqlite3",
        description="SQLite file backing the structure and metadata caches",
    )
    structure_ttl: float = Field(default=7 * _DAY, gt=0, description="Structure record TTL (seconds)")
    metadata_ttl: float = Field(default=1 * _HOUR, gt=0, description="Metadata lookup TTL (seconds)")
    sweep_interval: float = Field(
        default=0.0,
        ge=0,
        description="Seconds between background expiry sweeps; 0 disables the task",
    )

    # --- API ---
    cors_origins: str = "http://localhost:8080,http://localhost:5173"  # Comma-separated string

    # --- Logging ---
    log_level: str = Field(default="INFO")
    log_file: Optional[Path] = None

    @field_validator(
        "alphafold_base_url",
        "rcsb_base_url",
        "pdbe_base_url",
        "uniprot_base_url",
        "ncbi_eutils_base_url",
        "biostudies_base_url",
        "arrayexpress_base_url",
    )
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def resolver_config(self) -> ResolverConfig:
        """Freeze the resolution-related settings into a ``ResolverConfig``."""
        return ResolverConfig(
            alphafold_base_url=self.alphafold_base_url,
            rcsb_base_url=self.rcsb_base_url,
            pdbe_base_url=self.pdbe_base_url,
            uniprot_base_url=self.uniprot_base_url,
            ncbi_eutils_base_url=self.ncbi_eutils_base_url,
            ncbi_api_key=self.ncbi_api_key,
            biostudies_base_url=self.biostudies_base_url,
            arrayexpress_base_url=self.arrayexpress_base_url,
            max_attempts=self.retry_max_attempts,
            base_delay=self.retry_base_delay,
            timeout=self.http_timeout,
            structure_ttl=self.structure_ttl,
            metadata_ttl=self.metadata_ttl,
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/bioverse.yaml") -> "BioverseSettings":
        """Load settings from a YAML file, falling back to env/defaults."""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            return cls()

        with open(yaml_path) as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


# Global settings instance
_settings: Optional[BioverseSettings] = None


def get_settings() -> BioverseSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = BioverseSettings.from_yaml()
    return _settings


def reload_settings(yaml_path: Optional[str | Path] = None) -> BioverseSettings:
    """Reload settings from file and environment."""
    global _settings
    _settings = BioverseSettings.from_yaml(yaml_path) if yaml_path else BioverseSettings.from_yaml()
    return _settings
