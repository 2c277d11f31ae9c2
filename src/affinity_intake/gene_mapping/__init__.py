"""Gene identifier resolution.

Provides local normalization of Ensembl gene IDs and batched symbol
lookup against Ensembl REST.
"""

from affinity_intake.gene_mapping.resolver import (
    ENSEMBL_GENE_ID_PATTERN,
    IdentifierResolver,
    ResolutionReport,
    normalize_ensembl_id,
)

__all__ = [
    "ENSEMBL_GENE_ID_PATTERN",
    "IdentifierResolver",
    "ResolutionReport",
    "normalize_ensembl_id",
]
