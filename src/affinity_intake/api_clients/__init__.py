"""Outbound HTTP clients."""

from affinity_intake.api_clients.base import CachedAPIClient
from affinity_intake.api_clients.identity import IdentityClient, extract_bearer_token

__all__ = ["CachedAPIClient", "IdentityClient", "extract_bearer_token"]
