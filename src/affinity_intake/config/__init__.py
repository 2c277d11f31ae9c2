from .loader import load_config, load_config_from_env, load_config_with_overrides
from .schema import (
    APIConfig,
    DedupConfig,
    EnrichmentConfig,
    IdentityConfig,
    IntakeConfig,
    ValidationConfig,
)

__all__ = [
    "load_config",
    "load_config_from_env",
    "load_config_with_overrides",
    "IntakeConfig",
    "IdentityConfig",
    "APIConfig",
    "EnrichmentConfig",
    "DedupConfig",
    "ValidationConfig",
]
