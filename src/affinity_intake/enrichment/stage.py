"""Optional association enrichment stage of the submission pipeline.

A submission with an indication gets AssociationEnrichment; one without
gets NoEnrichment. Both expose the same interface so the pipeline has a
single code path.
"""

from typing import Iterable, Optional, Protocol

import structlog

from affinity_intake.enrichment.association import AssociationScoreFetcher
from affinity_intake.persistence.dedup import DedupIndex

logger = structlog.get_logger()


class EnrichmentStage(Protocol):
    """Attaches association scores to target identifiers."""

    indication_id: Optional[str]

    def scores_for(self, target_identifiers: Iterable[str]) -> dict[str, float]:
        """Return known scores keyed by target identifier."""
        ...


class NoEnrichment:
    """Stage used when no indication was supplied."""

    indication_id: Optional[str] = None

    def scores_for(self, target_identifiers: Iterable[str]) -> dict[str, float]:
        return {}


class AssociationEnrichment:
    """Scores targets against one indication.

    Stored scores from earlier submissions are reused; only misses are
    fetched remotely, one target at a time. A failed fetch leaves the
    target without a score.
    """

    def __init__(
        self,
        indication_id: str,
        dedup_index: DedupIndex,
        fetcher: AssociationScoreFetcher,
    ):
        self.indication_id = indication_id
        self.dedup_index = dedup_index
        self.fetcher = fetcher

    def scores_for(self, target_identifiers: Iterable[str]) -> dict[str, float]:
        targets = sorted(set(t for t in target_identifiers if t))
        if not targets:
            return {}

        known = self.dedup_index.find_known_scores(
            (self.indication_id, target) for target in targets
        )
        scores = {target: score for (_, target), score in known.items()}

        misses = [target for target in targets if target not in scores]
        fetched = 0
        for target in misses:
            try:
                score = self.fetcher.fetch_score(target, self.indication_id)
            except Exception as e:
                logger.warning(
                    "association_fetch_failed",
                    target_identifier=target,
                    indication_id=self.indication_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            if score is not None:
                scores[target] = score
                fetched += 1

        logger.info(
            "association_enrichment_complete",
            indication_id=self.indication_id,
            targets=len(targets),
            cached=len(known),
            fetched=fetched,
            missing=len(targets) - len(scores),
        )
        return scores
