"""Gene symbol to Ensembl gene ID resolution.

Symbols that already look like Ensembl gene IDs are normalized locally;
the rest are resolved with a single batched Ensembl REST lookup. Lookup
failures leave symbols unresolved instead of failing the caller.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

import structlog
from requests.exceptions import RequestException

from affinity_intake.api_clients.base import CachedAPIClient
from affinity_intake.config.schema import IntakeConfig

logger = structlog.get_logger()

ENSEMBL_GENE_ID_PATTERN = re.compile(r"^ENSG\d+(\.\d+)?$")


def normalize_ensembl_id(value: str) -> Optional[str]:
    """Return the unversioned, upper-cased Ensembl gene ID, or None.

    >>> normalize_ensembl_id("ensg00000141510.17")
    'ENSG00000141510'
    """
    upper = value.strip().upper()
    if not upper or not ENSEMBL_GENE_ID_PATTERN.match(upper):
        return None
    return upper.split(".")[0]


@dataclass
class ResolutionReport:
    """Summary of one resolution call.

    Attributes:
        total_symbols: Distinct non-empty symbols requested
        resolved_direct: Symbols that were already Ensembl IDs
        resolved_remote: Symbols resolved by the batch lookup
        unresolved: Symbols left without an identifier
        lookup_failed: True if the batch lookup errored or was rejected
    """
    total_symbols: int
    resolved_direct: int = 0
    resolved_remote: int = 0
    unresolved: list[str] = field(default_factory=list)
    lookup_failed: bool = False


class IdentifierResolver:
    """Maps free-text gene symbols to canonical Ensembl gene IDs."""

    def __init__(
        self,
        client: CachedAPIClient,
        lookup_url: str,
        timeout: float = 10.0,
    ):
        """Initialize resolver.

        Args:
            client: Shared HTTP client
            lookup_url: Ensembl ``lookup/symbol/<species>`` endpoint
            timeout: Timeout for the batched lookup in seconds
        """
        self.client = client
        self.lookup_url = lookup_url
        self.timeout = timeout

    def resolve(self, symbols: Iterable[str]) -> dict[str, str]:
        """Resolve symbols; unresolved symbols are absent from the result."""
        resolved, _ = self.resolve_with_report(symbols)
        return resolved

    def resolve_with_report(
        self,
        symbols: Iterable[str],
    ) -> tuple[dict[str, str], ResolutionReport]:
        """Resolve symbols and report how each was handled.

        Keys of the returned mapping are the trimmed symbols.
        """
        unique = list(dict.fromkeys(s.strip() for s in symbols if s and s.strip()))
        report = ResolutionReport(total_symbols=len(unique))
        resolved: dict[str, str] = {}
        pending: list[str] = []

        for symbol in unique:
            direct = normalize_ensembl_id(symbol)
            if direct:
                resolved[symbol] = direct
                report.resolved_direct += 1
            else:
                pending.append(symbol)

        if pending:
            found = self._lookup(pending)
            if found is None:
                report.lookup_failed = True
                found = {}
            resolved.update(found)
            report.resolved_remote = len(found)
            report.unresolved = [s for s in pending if s not in found]

        logger.info(
            "identifier_resolution_complete",
            total=report.total_symbols,
            direct=report.resolved_direct,
            remote=report.resolved_remote,
            unresolved=len(report.unresolved),
            lookup_failed=report.lookup_failed,
        )

        return resolved, report

    def _lookup(self, symbols: list[str]) -> Optional[dict[str, str]]:
        """One batched POST; None on transport error, non-success status or
        a response that is not a JSON object."""
        try:
            payload = self.client.post_json(
                self.lookup_url,
                {"symbols": symbols},
                timeout=self.timeout,
            )
        except (RequestException, ValueError) as e:
            logger.warning(
                "ensembl_lookup_failed",
                symbol_count=len(symbols),
                error=str(e),
            )
            return None

        if not isinstance(payload, dict):
            logger.warning(
                "ensembl_lookup_failed",
                symbol_count=len(symbols),
                error=f"unexpected payload type {type(payload).__name__}",
            )
            return None

        found = {}
        for symbol in symbols:
            entry = payload.get(symbol)
            if isinstance(entry, dict) and entry.get("id"):
                found[symbol] = entry["id"]
        return found

    @classmethod
    def from_config(cls, config: IntakeConfig, client: CachedAPIClient) -> "IdentifierResolver":
        return cls(
            client=client,
            lookup_url=config.enrichment.ensembl_lookup_url,
            timeout=config.enrichment.ensembl_timeout_seconds,
        )
