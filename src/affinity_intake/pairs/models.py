"""Data models for ligand/target inputs and pair candidates."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class WarningKind(str, Enum):
    """Closed set of per-pair warnings."""

    INVALID_SMILES = "invalid_smiles"
    SEQUENCE_MISSING = "sequence_missing"
    SEQUENCE_TOO_LONG = "sequence_too_long"
    PREVIOUS_RESULT_AVAILABLE = "previous_result_available"


@dataclass
class LigandInput:
    """One ligand row.

    Attributes:
        smiles: SMILES string (trimmed)
        name: Ligand name (None if blank or column absent)
    """
    smiles: str
    name: Optional[str] = None


@dataclass
class TargetInput:
    """One target row.

    Attributes:
        sequence: Amino-acid sequence (trimmed)
        name: Gene symbol or Ensembl ID as typed (None if blank or absent)
        resolved_identifier: Canonical Ensembl gene ID, once resolved
    """
    sequence: str
    name: Optional[str] = None
    resolved_identifier: Optional[str] = None


@dataclass
class PairCandidate:
    """One ligand x target combination before persistence.

    ``input_hash`` is set iff both trimmed smiles and sequence are non-empty.
    """
    smiles: str
    sequence: str
    ligand_name: Optional[str] = None
    gene_name: Optional[str] = None
    target_identifier: Optional[str] = None
    warnings: set[WarningKind] = field(default_factory=set)
    input_hash: Optional[str] = None
