"""Extract ligand and target inputs from parsed upload tables."""

from typing import Optional

from affinity_intake.errors import InputValidationError
from affinity_intake.pairs.models import LigandInput, TargetInput
from affinity_intake.tabular import TabularDocument

SMILES_COLUMN = "smiles"
SEQUENCE_COLUMN = "sequence"
NAME_COLUMN = "name"


def _cell(row: list[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def read_ligands(document: TabularDocument) -> list[LigandInput]:
    """Build ligand inputs from a table with a ``smiles`` column.

    Raises:
        InputValidationError: If the smiles column is missing
    """
    smiles_index = document.column_index(SMILES_COLUMN)
    if smiles_index is None:
        raise InputValidationError("Ligand CSV header must contain a smiles column")
    name_index = document.column_index(NAME_COLUMN)

    return [
        LigandInput(
            smiles=_cell(row, smiles_index),
            name=_cell(row, name_index) or None,
        )
        for row in document.rows
    ]


def read_targets(document: TabularDocument) -> list[TargetInput]:
    """Build target inputs from a table with a ``sequence`` column.

    Raises:
        InputValidationError: If the sequence column is missing
    """
    sequence_index = document.column_index(SEQUENCE_COLUMN)
    if sequence_index is None:
        raise InputValidationError("Target CSV header must contain a sequence column")
    name_index = document.column_index(NAME_COLUMN)

    return [
        TargetInput(
            sequence=_cell(row, sequence_index),
            name=_cell(row, name_index) or None,
        )
        for row in document.rows
    ]
