"""Pydantic models for intake configuration."""

import hashlib
import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from affinity_intake.errors import ConfigurationError


class IdentityConfig(BaseModel):
    """External identity service used to verify bearer tokens."""

    url: Optional[str] = Field(
        default=None,
        description="Base URL of the identity service (e.g. https://xyz.supabase.co)",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Service key sent as the apikey header",
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Token verification timeout in seconds",
    )


class APIConfig(BaseModel):
    """Configuration for outbound API clients."""

    rate_limit_per_second: int = Field(
        default=10,
        ge=1,
        description="Maximum non-cached API requests per second",
    )
    max_attempts: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts per request on transport errors (1 = no retry)",
    )
    cache_ttl_seconds: int = Field(
        default=86400,
        ge=0,
        description="Response cache time-to-live in seconds (0 = infinite)",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Default request timeout in seconds",
    )


class EnrichmentConfig(BaseModel):
    """Endpoints and bounds for identifier resolution and association scoring."""

    ensembl_lookup_url: str = Field(
        default="https://rest.ensembl.org/lookup/symbol/homo_sapiens",
        description="Ensembl REST batch symbol lookup endpoint",
    )
    ensembl_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the batched symbol lookup",
    )
    opentargets_graphql_url: str = Field(
        default="https://api.platform.opentargets.org/api/v4/graphql",
        description="Open Targets Platform GraphQL endpoint",
    )
    opentargets_timeout_seconds: float = Field(
        default=12.0,
        gt=0,
        description="Timeout for each association page request",
    )
    page_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Rows per association page",
    )


class DedupConfig(BaseModel):
    """Bounds for store existence checks."""

    chunk_size: int = Field(
        default=200,
        ge=1,
        description="Maximum hashes or identifiers per store query",
    )


class ValidationConfig(BaseModel):
    """Per-pair validation limits."""

    max_sequence_length: int = Field(
        default=1280,
        ge=1,
        description="Sequences longer than this are flagged sequence_too_long",
    )


class IntakeConfig(BaseModel):
    """Main intake configuration."""

    duckdb_path: Path = Field(
        ...,
        description="Path to DuckDB database file holding the runs table",
    )
    cache_dir: Path = Field(
        ...,
        description="Directory for API response caching",
    )
    model_version: Optional[str] = Field(
        default=None,
        description="Affinity model version folded into every input hash",
    )
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)

    @field_validator("cache_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def missing_server_settings(self, require_identity: bool = True) -> list[str]:
        """Return the names of required server settings that are unset.

        Identity settings are only needed when tokens are verified (API).
        """
        missing = []
        if not (self.model_version or "").strip():
            missing.append("model_version")
        if not require_identity:
            return missing
        if not (self.identity.url or "").strip():
            missing.append("identity.url")
        if not (self.identity.api_key or "").strip():
            missing.append("identity.api_key")
        return missing

    def require_server_settings(self, require_identity: bool = True) -> None:
        """
        Fail fast when the server is not configured.

        Raises:
            ConfigurationError: If any required setting is absent
        """
        missing = self.missing_server_settings(require_identity)
        if missing:
            raise ConfigurationError(
                f"Server configuration is incomplete: {', '.join(missing)}"
            )

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Secrets are excluded so the hash can be displayed and logged.
        """
        config_dict = self.model_dump(mode="python", exclude={"identity": {"api_key"}})
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
