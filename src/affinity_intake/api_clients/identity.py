"""Bearer token verification against the external identity service."""

from typing import Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from affinity_intake.config.schema import IntakeConfig
from affinity_intake.errors import AuthenticationError

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Return the token from an Authorization header, or "" if absent."""
    header = authorization or ""
    if not header.startswith(BEARER_PREFIX):
        return ""
    return header[len(BEARER_PREFIX):].strip()


class IdentityClient:
    """Resolves a bearer token to a user id via the identity service.

    Tokens are checked with ``GET {url}/auth/v1/user``; the service key is
    sent as the ``apikey`` header.
    """

    def __init__(self, url: str, api_key: str, timeout: float = 10.0):
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(httpx.ConnectError),
        reraise=True,
    )
    def _fetch_user(self, token: str) -> httpx.Response:
        with httpx.Client(timeout=self.timeout) as client:
            return client.get(
                f"{self.url}/auth/v1/user",
                headers={
                    "Authorization": f"{BEARER_PREFIX}{token}",
                    "apikey": self.api_key,
                },
            )

    def verify(self, token: str) -> str:
        """Verify a bearer token and return the user id.

        Raises:
            AuthenticationError: If the token is empty, rejected, or the
                identity service cannot be reached
        """
        if not token:
            raise AuthenticationError("Authentication required")

        try:
            response = self._fetch_user(token)
        except httpx.HTTPError as e:
            logger.warning("identity_verification_failed", error=str(e))
            raise AuthenticationError("Authentication required") from e

        if response.status_code != 200:
            logger.info("identity_token_rejected", status_code=response.status_code)
            raise AuthenticationError("Authentication required")

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning("identity_response_invalid", error=str(e))
            raise AuthenticationError("Authentication required") from e

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            logger.warning("identity_response_invalid", payload_type=type(payload).__name__)
            raise AuthenticationError("Authentication required")
        return str(user_id)

    @classmethod
    def from_config(cls, config: IntakeConfig) -> "IdentityClient":
        """Create client from intake configuration (settings must be present)."""
        config.require_server_settings()
        return cls(
            url=config.identity.url,
            api_key=config.identity.api_key,
            timeout=config.identity.timeout_seconds,
        )
