"""Allow-listed disease indications for association scoring."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Indication:
    id: str
    label: str


INDICATIONS = [
    Indication(id="EFO_0000565", label="Leukemia"),
]


def is_valid_indication(indication_id: str) -> bool:
    return any(option.id == indication_id for option in INDICATIONS)


def get_indication_label(indication_id: str) -> str:
    """Human-readable label, falling back to the ID itself."""
    for option in INDICATIONS:
        if option.id == indication_id:
            return option.label
    return indication_id
