"""Shared HTTP client for the enrichment services.

Responses are cached in SQLite and replayed for identical requests, so a
resubmitted batch does not hit Ensembl or Open Targets again.
"""

import logging
import time
from pathlib import Path
from typing import Any, Optional

import requests
import requests_cache
from requests.exceptions import ConnectionError, Timeout
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from affinity_intake.config.schema import IntakeConfig

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class CachedAPIClient:
    """
    Cached, rate-limited HTTP session for JSON services.

    - Only 200 responses are cached; GET and POST are both cacheable and
      the POST body is part of the cache key.
    - Transport failures (timeouts, refused connections) are retried up
      to ``max_attempts`` times; error statuses raise at once.
    - Requests answered from the network are followed by a short pause
      so at most ``rate_limit`` go out per second.
    """

    def __init__(
        self,
        cache_dir: Path,
        rate_limit: int = 10,
        max_attempts: int = 1,
        cache_ttl: int = 86400,
        timeout: float = 30,
    ):
        """
        Args:
            cache_dir: Directory holding the SQLite response cache
            rate_limit: Network requests per second
            max_attempts: Tries per request on transport errors (1 = no retry)
            cache_ttl: Seconds a cached response stays valid (0 = forever)
            timeout: Timeout used when a call does not pass its own
        """
        self.cache_dir = Path(cache_dir)
        self.rate_limit = rate_limit
        self.max_attempts = max_attempts
        self.timeout = timeout

        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.session = requests_cache.CachedSession(
            cache_name=str(self.cache_dir / "http_cache"),
            backend="sqlite",
            expire_after=cache_ttl or None,
            allowable_methods=("GET", "POST"),
            allowable_codes=(200,),
        )

    def _transport_retry(self):
        return retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type((Timeout, ConnectionError)),
            reraise=True,
        )

    def request(
        self,
        method: str,
        url: str,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> requests.Response:
        """
        Send one request through the cache.

        Args:
            method: HTTP method
            url: Request URL
            timeout: Per-call timeout in seconds (client default if None)
            **kwargs: Passed through to ``Session.request``

        Raises:
            HTTPError: On any non-2xx status
            Timeout, ConnectionError: When every attempt failed in transport
        """
        call_timeout = self.timeout if timeout is None else timeout

        @self._transport_retry()
        def send() -> requests.Response:
            response = self.session.request(method, url, timeout=call_timeout, **kwargs)
            if response.status_code == 429:
                logger.warning(f"Throttled by {url} (429)")
            response.raise_for_status()
            return response

        response = send()

        if not getattr(response, "from_cache", False):
            time.sleep(1 / self.rate_limit)

        return response

    def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        timeout: Optional[float] = None,
    ) -> Any:
        """
        POST ``payload`` as JSON and decode the JSON answer.

        Raises:
            RequestException: On transport failure or error status
            ValueError: If the body is not JSON
        """
        response = self.request(
            "POST",
            url,
            json=payload,
            headers=JSON_HEADERS,
            timeout=timeout,
        )
        return response.json()

    @classmethod
    def from_config(cls, config: IntakeConfig) -> "CachedAPIClient":
        api = config.api
        return cls(
            cache_dir=config.cache_dir,
            rate_limit=api.rate_limit_per_second,
            max_attempts=api.max_attempts,
            cache_ttl=api.cache_ttl_seconds,
            timeout=api.timeout_seconds,
        )

    def close(self) -> None:
        self.session.close()
