"""Run records: models and batch assembly."""

from affinity_intake.runs.models import (
    RUNS_TABLE_NAME,
    PriorResult,
    RunRecord,
    RunStatus,
    RunSummary,
)
from affinity_intake.runs.builder import build_runs

__all__ = ["RUNS_TABLE_NAME", "PriorResult", "RunRecord", "RunStatus", "RunSummary", "build_runs"]
