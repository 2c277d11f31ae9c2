"""Persistence layer for run records and dedup lookups."""

from affinity_intake.persistence.dedup import DedupIndex, chunked
from affinity_intake.persistence.duckdb_store import DEFAULT_SORT, SORT_ORDERS, RunStore

__all__ = [
    "RunStore",
    "SORT_ORDERS",
    "DEFAULT_SORT",
    "DedupIndex",
    "chunked",
]
