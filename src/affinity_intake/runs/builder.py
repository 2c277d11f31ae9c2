"""Assemble persistable run records from pair candidates."""

import uuid
from datetime import datetime
from typing import Mapping, Optional, Sequence

from affinity_intake.pairs.models import PairCandidate, WarningKind
from affinity_intake.runs.models import PriorResult, RunRecord, RunStatus, RunSummary


def _sorted_warnings(warnings: set[WarningKind]) -> list[WarningKind]:
    return sorted(warnings, key=lambda w: w.value)


def build_runs(
    candidates: Sequence[PairCandidate],
    prior_done: Mapping[str, PriorResult],
    association_scores: Mapping[str, float],
    user_id: str,
    memo: str,
    model_version: str,
    now: datetime,
    indication_id: Optional[str] = None,
) -> tuple[list[RunRecord], RunSummary]:
    """Build one record per candidate, in candidate order.

    Status rules:
    - no warnings and a done run with the same input hash: done, affinity
      copied, warnings = [previous_result_available]
    - any warning: failed, no affinity, warnings kept
    - otherwise: queued, no affinity, warnings None

    Args:
        candidates: Pair candidates
        prior_done: Done results keyed by input hash
        association_scores: Scores keyed by target identifier
        user_id: Submitting user
        memo: Free-text memo copied to every record
        model_version: Model version stored on every record
        now: Creation timestamp shared by the batch
        indication_id: Indication used for scoring, if any

    Returns:
        Tuple of (records, summary). Nothing is persisted here.
    """
    records: list[RunRecord] = []

    for candidate in candidates:
        prior = prior_done.get(candidate.input_hash) if candidate.input_hash else None
        association_score = (
            association_scores.get(candidate.target_identifier)
            if candidate.target_identifier
            else None
        )

        affinity_value = None
        affinity_prob = None
        if not candidate.warnings and prior is not None:
            status = RunStatus.DONE
            affinity_value = prior.affinity_value
            affinity_prob = prior.affinity_prob
            warnings = [WarningKind.PREVIOUS_RESULT_AVAILABLE]
        elif candidate.warnings:
            status = RunStatus.FAILED
            warnings = _sorted_warnings(candidate.warnings)
        else:
            status = RunStatus.QUEUED
            warnings = None

        records.append(RunRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            status=status,
            memo=memo,
            created_at=now,
            smiles=candidate.smiles,
            sequence=candidate.sequence,
            ligand_name=candidate.ligand_name,
            gene_name=candidate.gene_name,
            indication_id=indication_id,
            target_identifier=candidate.target_identifier,
            association_score=association_score,
            affinity_value=affinity_value,
            affinity_prob=affinity_prob,
            input_hash=candidate.input_hash,
            warnings=warnings,
            model_version=model_version,
        ))

    return records, RunSummary.from_records(records)
