"""Configuration loading with YAML parsing and validation."""

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import pydantic_yaml

from .schema import IntakeConfig

DEFAULT_CONFIG_PATH = "config/default.yaml"
CONFIG_PATH_ENV = "AFFINITY_INTAKE_CONFIG"

# Environment variables that override config values at server start
ENV_OVERRIDES = {
    "MODEL_VERSION": "model_version",
    "IDENTITY_URL": "identity.url",
    "IDENTITY_API_KEY": "identity.api_key",
}


def load_config(config_path: Path | str) -> IntakeConfig:
    """
    Load and validate intake configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated IntakeConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        yaml_content = f.read()

    return pydantic_yaml.parse_yaml_raw_as(IntakeConfig, yaml_content)


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> IntakeConfig:
    """
    Load config from YAML and apply dictionary overrides.

    Args:
        config_path: Path to YAML configuration file
        overrides: Values to override; dotted keys address nested sections
                   (e.g. "identity.api_key")

    Returns:
        Validated IntakeConfig with overrides applied
    """
    config = load_config(config_path)

    config_dict = config.model_dump()

    for key, value in overrides.items():
        if "." in key:
            parts = key.split(".")
            target = config_dict
            for part in parts[:-1]:
                target = target[part]
            target[parts[-1]] = value
        else:
            config_dict[key] = value

    return IntakeConfig.model_validate(config_dict)


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> IntakeConfig:
    """
    Load the server configuration.

    The YAML path comes from AFFINITY_INTAKE_CONFIG; secrets and the model
    version may be supplied through MODEL_VERSION, IDENTITY_URL and
    IDENTITY_API_KEY instead of the file.
    """
    environ = os.environ if environ is None else environ
    config_path = environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
    overrides = {
        key: environ[name]
        for name, key in ENV_OVERRIDES.items()
        if environ.get(name)
    }
    return load_config_with_overrides(config_path, overrides)
