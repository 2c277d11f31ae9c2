"""Data models for persisted runs and submission summaries."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from affinity_intake.pairs.models import WarningKind

RUNS_TABLE_NAME = "runs"


class RunStatus(str, Enum):
    """Lifecycle of a run. This package only creates queued, done and failed."""

    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PriorResult:
    """Affinity result of a previously completed run."""
    affinity_value: Optional[float]
    affinity_prob: Optional[float]


class RunRecord(BaseModel):
    """One persisted ligand x target run.

    Created once per submission and never mutated here; done rows feed
    the dedup check of later submissions.
    """

    id: str = Field(description="Fresh UUID4 string")
    user_id: str
    status: RunStatus
    memo: str = ""
    created_at: datetime
    smiles: str
    sequence: str
    ligand_name: Optional[str] = None
    gene_name: Optional[str] = None
    indication_id: Optional[str] = Field(
        None,
        description="EFO/MONDO disease ID used for association scoring",
    )
    target_identifier: Optional[str] = Field(
        None,
        description="Ensembl gene ID of the target (e.g. ENSG00000141510)",
    )
    association_score: Optional[float] = None
    affinity_value: Optional[float] = None
    affinity_prob: Optional[float] = None
    input_hash: Optional[str] = None
    warnings: Optional[list[WarningKind]] = None
    model_version: str

    def to_row(self) -> dict:
        """Flatten to store column values (enum values as strings)."""
        row = self.model_dump()
        row["status"] = self.status.value
        row["warnings"] = (
            [w.value for w in self.warnings] if self.warnings is not None else None
        )
        return row


class RunSummary(BaseModel):
    """Status counts of one submission."""

    total: int = 0
    queued: int = 0
    done: int = 0
    failed: int = 0

    @classmethod
    def from_records(cls, records: list[RunRecord]) -> "RunSummary":
        summary = cls()
        for record in records:
            summary.total += 1
            if record.status == RunStatus.QUEUED:
                summary.queued += 1
            elif record.status == RunStatus.DONE:
                summary.done += 1
            elif record.status == RunStatus.FAILED:
                summary.failed += 1
        return summary
