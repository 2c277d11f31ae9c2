"""Disease association enrichment."""

from affinity_intake.enrichment.association import (
    ASSOCIATED_DISEASES_QUERY,
    AssociationScoreFetcher,
)
from affinity_intake.enrichment.stage import (
    AssociationEnrichment,
    EnrichmentStage,
    NoEnrichment,
)

__all__ = [
    "ASSOCIATED_DISEASES_QUERY",
    "AssociationScoreFetcher",
    "AssociationEnrichment",
    "EnrichmentStage",
    "NoEnrichment",
]
