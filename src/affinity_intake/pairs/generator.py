"""Ligand x target cross product with per-pair validation and input hashing."""

import hashlib
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import structlog

from affinity_intake.pairs.models import (
    LigandInput,
    PairCandidate,
    TargetInput,
    WarningKind,
)

logger = structlog.get_logger()

DEFAULT_MAX_SEQUENCE_LENGTH = 1280


@dataclass(frozen=True)
class WarningRule:
    """A warning raised when ``applies(smiles, sequence)`` is true.

    Both arguments are already trimmed.
    """
    kind: WarningKind
    applies: Callable[[str, str], bool]


def default_rules(max_sequence_length: int = DEFAULT_MAX_SEQUENCE_LENGTH) -> list[WarningRule]:
    """Ordered validation rules.

    sequence_missing and sequence_too_long are mutually exclusive: the
    length rule only fires on non-empty sequences.
    """
    return [
        WarningRule(WarningKind.INVALID_SMILES, lambda smiles, sequence: not smiles),
        WarningRule(WarningKind.SEQUENCE_MISSING, lambda smiles, sequence: not sequence),
        WarningRule(
            WarningKind.SEQUENCE_TOO_LONG,
            lambda smiles, sequence: bool(sequence) and len(sequence) > max_sequence_length,
        ),
    ]


def compute_input_hash(smiles: str, sequence: str, model_version: str) -> str:
    """SHA-256 hex digest of ``smiles|sequence|model_version``."""
    return hashlib.sha256(f"{smiles}|{sequence}|{model_version}".encode("utf-8")).hexdigest()


def evaluate_rules(smiles: str, sequence: str, rules: Sequence[WarningRule]) -> set[WarningKind]:
    """Return the warnings of every rule that applies, in rule order."""
    return {rule.kind for rule in rules if rule.applies(smiles, sequence)}


def generate_pairs(
    ligands: Sequence[LigandInput],
    targets: Sequence[TargetInput],
    model_version: str,
    rules: Optional[Sequence[WarningRule]] = None,
) -> list[PairCandidate]:
    """Build every ligand x target candidate, ligands outer and targets inner.

    Args:
        ligands: Ligand inputs
        targets: Target inputs (resolved_identifier may be set)
        model_version: Model version folded into each input hash
        rules: Validation rules (default: default_rules())

    Returns:
        Exactly len(ligands) * len(targets) candidates in deterministic order.
        A too-long sequence still gets an input hash; its warning alone
        routes it to failed status.
    """
    rules = default_rules() if rules is None else rules
    candidates: list[PairCandidate] = []

    for ligand in ligands:
        smiles = ligand.smiles.strip()
        for target in targets:
            sequence = target.sequence.strip()

            input_hash = None
            if smiles and sequence:
                input_hash = compute_input_hash(smiles, sequence, model_version)

            candidates.append(PairCandidate(
                smiles=smiles,
                sequence=sequence,
                ligand_name=ligand.name,
                gene_name=target.name,
                target_identifier=target.resolved_identifier,
                warnings=evaluate_rules(smiles, sequence, rules),
                input_hash=input_hash,
            ))

    flagged = sum(1 for candidate in candidates if candidate.warnings)
    logger.info(
        "pairs_generated",
        ligand_count=len(ligands),
        target_count=len(targets),
        pair_count=len(candidates),
        flagged_count=flagged,
    )

    return candidates
