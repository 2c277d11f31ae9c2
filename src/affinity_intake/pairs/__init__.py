"""Pair generation: ligand and target inputs, cross product, validation rules."""

from affinity_intake.pairs.generator import (
    DEFAULT_MAX_SEQUENCE_LENGTH,
    WarningRule,
    compute_input_hash,
    default_rules,
    evaluate_rules,
    generate_pairs,
)
from affinity_intake.pairs.inputs import read_ligands, read_targets
from affinity_intake.pairs.models import (
    LigandInput,
    PairCandidate,
    TargetInput,
    WarningKind,
)

__all__ = [
    "DEFAULT_MAX_SEQUENCE_LENGTH",
    "WarningRule",
    "compute_input_hash",
    "default_rules",
    "evaluate_rules",
    "generate_pairs",
    "read_ligands",
    "read_targets",
    "LigandInput",
    "PairCandidate",
    "TargetInput",
    "WarningKind",
]
