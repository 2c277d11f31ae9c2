"""Batch existence checks against stored runs.

Prior done runs let a resubmitted pair reuse its affinity result, and any
stored association score is reused across submissions instead of being
fetched again.
"""

from typing import Iterable, TypeVar

import duckdb
import structlog

from affinity_intake.errors import StoreError
from affinity_intake.persistence.duckdb_store import RunStore
from affinity_intake.runs.models import PriorResult

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_CHUNK_SIZE = 200


def chunked(items: Iterable[T], size: int) -> list[list[T]]:
    """Split items into consecutive lists of at most ``size``."""
    items = list(items)
    return [items[i:i + size] for i in range(0, len(items), size)]


class DedupIndex:
    """Looks up prior done runs and known association scores in chunks."""

    def __init__(self, store: RunStore, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.store = store
        self.chunk_size = chunk_size

    def find_done(self, hashes: Iterable[str]) -> dict[str, PriorResult]:
        """Map each input hash with a done run to that run's affinity result.

        Raises:
            StoreError: If any chunk query fails
        """
        unique = sorted(set(h for h in hashes if h))
        found: dict[str, PriorResult] = {}

        for batch in chunked(unique, self.chunk_size):
            try:
                df = self.store.find_done_runs(batch)
            except duckdb.Error as e:
                logger.error("dedup_query_failed", batch_size=len(batch), error=str(e))
                raise StoreError("Duplicate check failed") from e

            for row in df.iter_rows(named=True):
                # Rows arrive newest first; keep the most recent result
                if row["input_hash"] and row["input_hash"] not in found:
                    found[row["input_hash"]] = PriorResult(
                        affinity_value=row["affinity_value"],
                        affinity_prob=row["affinity_prob"],
                    )

        logger.info("dedup_done_lookup", hashes=len(unique), matched=len(found))
        return found

    def find_known_scores(
        self,
        pairs: Iterable[tuple[str, str]],
    ) -> dict[tuple[str, str], float]:
        """Map (indication_id, target_identifier) pairs to stored scores.

        Raises:
            StoreError: If any chunk query fails
        """
        by_indication: dict[str, set[str]] = {}
        for indication_id, target_identifier in pairs:
            if indication_id and target_identifier:
                by_indication.setdefault(indication_id, set()).add(target_identifier)

        known: dict[tuple[str, str], float] = {}
        for indication_id, targets in by_indication.items():
            for batch in chunked(sorted(targets), self.chunk_size):
                try:
                    df = self.store.find_association_scores(indication_id, batch)
                except duckdb.Error as e:
                    logger.error(
                        "association_cache_query_failed",
                        indication_id=indication_id,
                        batch_size=len(batch),
                        error=str(e),
                    )
                    raise StoreError("Association score lookup failed") from e

                for row in df.iter_rows(named=True):
                    key = (indication_id, row["target_identifier"])
                    if key not in known:
                        known[key] = row["association_score"]

        logger.info(
            "dedup_association_lookup",
            requested=sum(len(t) for t in by_indication.values()),
            matched=len(known),
        )
        return known
