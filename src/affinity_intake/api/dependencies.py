"""Service wiring for the HTTP API."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from affinity_intake.api_clients.identity import IdentityClient
from affinity_intake.config import IntakeConfig, load_config_from_env
from affinity_intake.persistence import RunStore
from affinity_intake.pipeline import SubmissionPipeline


@dataclass
class IntakeServices:
    """Long-lived collaborators shared by all requests."""
    config: IntakeConfig
    pipeline: SubmissionPipeline
    identity: Optional[IdentityClient] = None

    @property
    def store(self) -> RunStore:
        return self.pipeline.store


def build_services(config: IntakeConfig) -> IntakeServices:
    """Wire services from configuration.

    The identity client is left unset when its settings are missing;
    requests then fail with a configuration error.
    """
    identity = None
    if not config.missing_server_settings():
        identity = IdentityClient.from_config(config)
    return IntakeServices(
        config=config,
        pipeline=SubmissionPipeline.from_config(config),
        identity=identity,
    )


@lru_cache
def get_services() -> IntakeServices:
    """Get the services instance.

    Cached to ensure singleton behavior across requests.
    """
    return build_services(load_config_from_env())
